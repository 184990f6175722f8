import asyncio
from decimal import Decimal

import pytest

from core.errors import StoreFailure
from products.repository import ProductRepository


class RaisingPool:
    """Pool stand-in whose every call fails with `error`."""

    def __init__(self, error: BaseException | None = None) -> None:
        self.error = error
        self.calls = 0

    async def _fail(self, *args):
        self.calls += 1
        raise self.error

    fetchrow = fetch = execute = _fail


@pytest.mark.parametrize("error", [asyncio.TimeoutError(), OSError("connection reset")])
def test_driver_errors_become_store_failure(error):
    repository = ProductRepository(RaisingPool(error))

    with pytest.raises(StoreFailure):
        asyncio.run(repository.get_product(1))
    with pytest.raises(StoreFailure):
        asyncio.run(
            repository.insert_product(name="A", description="d", price=Decimal("1"), quantity=1, images=[])
        )


def test_id_outside_bigint_never_reaches_the_database():
    pool = RaisingPool(AssertionError("should not be called"))
    repository = ProductRepository(pool)

    assert asyncio.run(repository.get_product(2**63)) is None
    assert asyncio.run(repository.get_product(-(2**63) - 1)) is None
    assert pool.calls == 0
