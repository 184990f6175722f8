"""
Shared, cross-cutting code for the API.

`core/` should contain small building blocks that features use
(DB wiring, settings, error types). Keep product SQL and business logic
in `products/`.
"""
