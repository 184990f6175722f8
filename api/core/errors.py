"""
Error taxonomy for the products API.

Each error carries the HTTP status and the client-facing message; the app
renders them as `{"error": message}` (see `api/main.py`).
"""

from __future__ import annotations


class ProductError(RuntimeError):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        self.message = message or self.message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


# Rejected upload (type, content type, size, count). Nothing is stored.
class ValidationError(ProductError):
    status_code = 400
    message = "Only images are allowed (JPEG,PNG,JPG,GIF)"


class NotFound(ProductError):
    status_code = 404
    message = "Product not found"


# Stored `images` text is not a JSON list of strings.
class CorruptData(ProductError):
    status_code = 500
    message = "Failed to parse images"


class StoreFailure(ProductError):
    status_code = 500
    message = "Database error occurred"


# Never surfaced to clients; only logged.
class FileCleanupFailure(ProductError):
    message = "Failed to delete file"
