"""
Dependencies wiring the products router to process-wide resources.
"""

from __future__ import annotations

import asyncpg
from fastapi import Depends, Request

from core import db

from .repository import ProductRepository
from .service import ProductService, ProductStore
from .storage import BlobStore


def get_blob_store(request: Request) -> BlobStore:
    blobs = getattr(request.app.state, "blob_store", None)
    if blobs is None:
        raise RuntimeError("Blob store is not initialized. It is created on startup.")
    return blobs


def get_repository(pool: asyncpg.Pool = Depends(db.get_pool)) -> ProductStore:
    return ProductRepository(pool)


def get_product_service(
    repository: ProductStore = Depends(get_repository),
    blobs: BlobStore = Depends(get_blob_store),
) -> ProductService:
    return ProductService(repository, blobs)
