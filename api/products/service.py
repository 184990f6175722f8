"""
Product "service layer".

Coordinates the record store with the blob store:
- uploads are written before the record, so a failed write must remove them
- replaced images are only released after the new record is written
- a product is only deleted once its image list could be read
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol

from core.errors import CorruptData, NotFound, ProductError, StoreFailure

from starlette.concurrency import run_in_threadpool

from .repository import id_in_range
from .storage import BlobStore

logger = logging.getLogger(__name__)


class ProductStore(Protocol):
    async def list_products(self) -> list[dict[str, Any]]: ...

    async def get_product(self, product_id: int) -> dict[str, Any] | None: ...

    async def insert_product(
        self, *, name: str, description: str, price: Decimal, quantity: int, images: list[str]
    ) -> int: ...

    async def update_product(
        self, product_id: int, *, name: str, description: str, price: Decimal, quantity: int, images: list[str]
    ) -> None: ...

    async def delete_product(self, product_id: int) -> None: ...


@dataclass(frozen=True)
class UpdateResult:
    product_id: int
    images: list[str]
    # Files no longer referenced; the caller schedules their removal.
    stale_images: list[str]


def parse_images(raw: Any, *, product_id: Any = None) -> list[str]:
    """
    Decode the stored `images` text into a list of paths.
    """
    if isinstance(raw, list):
        value = raw
    else:
        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.error("images_parse_failed product_id=%s", product_id)
            raise CorruptData() from e

    if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
        logger.error("images_not_a_list product_id=%s", product_id)
        raise CorruptData()

    return value


def to_product(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": int(row["id"]),
        "name": row["name"],
        "description": row["description"],
        "price": float(row["price"]) if row["price"] is not None else None,
        "quantity": row["quantity"],
        "images": parse_images(row["images"], product_id=row["id"]),
    }


class ProductService:
    def __init__(self, repository: ProductStore, blobs: BlobStore) -> None:
        self.repository = repository
        self.blobs = blobs

    async def list_products(self) -> list[dict[str, Any]]:
        rows = await self.repository.list_products()
        return [to_product(row) for row in rows]

    async def get_product(self, product_id: int) -> dict[str, Any]:
        if not id_in_range(product_id):
            raise NotFound()
        row = await self.repository.get_product(product_id)
        if row is None:
            raise NotFound()
        return to_product(row)

    async def create_product(
        self,
        *,
        name: str,
        description: str,
        price: Decimal,
        quantity: int,
        uploaded: list[str],
    ) -> int:
        """
        Insert a product referencing files the upload intake already stored.
        """
        try:
            product_id = await self.repository.insert_product(
                name=name,
                description=description,
                price=price,
                quantity=quantity,
                images=uploaded,
            )
        except StoreFailure:
            await run_in_threadpool(self.blobs.delete_many, uploaded)
            raise

        logger.info("product_created product_id=%s images=%s", product_id, len(uploaded))
        return product_id

    async def update_product(
        self,
        product_id: int,
        *,
        name: str | None = None,
        description: str | None = None,
        price: Decimal | None = None,
        quantity: int | None = None,
        uploaded: list[str] | None = None,
    ) -> UpdateResult:
        """
        Rewrite a product. Falsy field values keep the stored value.

        New uploads replace the image list wholesale; without them the stored
        list is kept as is.
        """
        uploaded = uploaded or []
        try:
            if not id_in_range(product_id):
                raise NotFound()
            current = await self.repository.get_product(product_id)
            if current is None:
                raise NotFound()
            current_images = parse_images(current["images"], product_id=product_id)

            if uploaded:
                images, stale = list(uploaded), current_images
            else:
                images, stale = current_images, []

            await self.repository.update_product(
                product_id,
                name=name or current["name"],
                description=description or current["description"],
                price=price or current["price"],
                quantity=quantity or current["quantity"],
                images=images,
            )
        except ProductError:
            await run_in_threadpool(self.blobs.delete_many, uploaded)
            raise

        logger.info(
            "product_updated product_id=%s images=%s replaced=%s",
            product_id,
            len(images),
            len(stale),
        )
        return UpdateResult(product_id=product_id, images=images, stale_images=stale)

    async def delete_product(self, product_id: int) -> int:
        """
        Remove a product's files, then its record. Returns how many files went.

        If the image list cannot be read the record stays, so its files can
        still be found later.
        """
        if not id_in_range(product_id):
            raise NotFound()
        current = await self.repository.get_product(product_id)
        if current is None:
            raise NotFound()
        images = parse_images(current["images"], product_id=product_id)

        deleted = await run_in_threadpool(self.blobs.delete_many, images)
        await self.repository.delete_product(product_id)

        logger.info("product_deleted product_id=%s images=%s deleted=%s", product_id, len(images), deleted)
        return deleted
