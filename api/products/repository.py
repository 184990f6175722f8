"""
Product persistence.
This module is where product-related SQL lives.
"""

from __future__ import annotations

import asyncio
import json
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Iterator

import asyncpg

from core import db
from core.errors import StoreFailure

PRODUCT_COLUMNS = "id, name, description, price, images, quantity"

# `products.id` is bigserial; asyncpg refuses to encode anything outside int8.
BIGINT_MIN = -(2**63)
BIGINT_MAX = 2**63 - 1


def id_in_range(product_id: int) -> bool:
    return BIGINT_MIN <= product_id <= BIGINT_MAX


def serialize_images(images: list[str]) -> str:
    return json.dumps(list(images), ensure_ascii=True)


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    """
    Re-raise any database failure as StoreFailure, keeping the cause.
    """
    try:
        yield
    except StoreFailure:
        raise
    except (asyncpg.PostgresError, asyncpg.InterfaceError, asyncio.TimeoutError, OSError, RuntimeError) as e:
        raise StoreFailure(f"Failed to {action}. Database error occurred") from e


class ProductRepository:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def list_products(self) -> list[dict[str, Any]]:
        with _store_errors("fetch products"):
            return await db.fetch_all(
                self.pool,
                f"SELECT {PRODUCT_COLUMNS} FROM products ORDER BY id",
            )

    async def get_product(self, product_id: int) -> dict[str, Any] | None:
        if not id_in_range(product_id):
            return None
        with _store_errors("fetch product"):
            return await db.fetch_one(
                self.pool,
                f"SELECT {PRODUCT_COLUMNS} FROM products WHERE id = $1",
                product_id,
            )

    async def insert_product(
        self,
        *,
        name: str,
        description: str,
        price: Decimal,
        quantity: int,
        images: list[str],
    ) -> int:
        with _store_errors("save product"):
            row = await db.fetch_one(
                self.pool,
                """
                INSERT INTO products (name, description, price, images, quantity)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING id
                """,
                name,
                description,
                price,
                serialize_images(images),
                quantity,
            )
        if row is None or "id" not in row:
            raise StoreFailure("Failed to save product. Database error occurred")
        return int(row["id"])

    async def update_product(
        self,
        product_id: int,
        *,
        name: str,
        description: str,
        price: Decimal,
        quantity: int,
        images: list[str],
    ) -> None:
        with _store_errors("update product"):
            await db.execute(
                self.pool,
                """
                UPDATE products
                SET name = $2, description = $3, price = $4, quantity = $5, images = $6
                WHERE id = $1
                """,
                product_id,
                name,
                description,
                price,
                quantity,
                serialize_images(images),
            )

    async def delete_product(self, product_id: int) -> None:
        with _store_errors("delete product"):
            await db.execute(self.pool, "DELETE FROM products WHERE id = $1", product_id)
