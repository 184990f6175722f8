"""
FastAPI router for product endpoints.
"""

from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile

from core.errors import NotFound

from . import uploads
from .dependencies import get_blob_store, get_product_service
from .service import ProductService
from .storage import BlobStore

router = APIRouter()


@router.get("/")
async def list_products(service: ProductService = Depends(get_product_service)) -> list[dict]:
    return await service.list_products()


@router.get("/{product_id}")
async def get_product(
    product_id: int,
    service: ProductService = Depends(get_product_service),
) -> dict:
    return await service.get_product(product_id)


@router.post("/")
async def create_product(
    name: str = Form(...),
    description: str = Form(...),
    price: Decimal = Form(...),
    quantity: int = Form(...),
    images: list[UploadFile] | None = File(default=None),
    blobs: BlobStore = Depends(get_blob_store),
    service: ProductService = Depends(get_product_service),
) -> dict:
    """
    Create a product with up to 5 images (field `images`).

    Files are stored first; if the insert fails they are removed again.
    """
    uploaded = await uploads.accept_images(blobs, images)
    product_id = await service.create_product(
        name=name,
        description=description,
        price=price,
        quantity=quantity,
        uploaded=uploaded,
    )
    return {"id": product_id}


@router.patch("/{product_id}")
async def update_product(
    product_id: int,
    background_tasks: BackgroundTasks,
    name: str | None = Form(default=None),
    description: str | None = Form(default=None),
    price: Decimal | None = Form(default=None),
    quantity: int | None = Form(default=None),
    images: list[UploadFile] | None = File(default=None),
    blobs: BlobStore = Depends(get_blob_store),
    service: ProductService = Depends(get_product_service),
) -> dict:
    """
    Update the given fields. New images replace all old ones.
    """
    uploaded = await uploads.accept_images(blobs, images)
    try:
        result = await service.update_product(
            product_id,
            name=name,
            description=description,
            price=price,
            quantity=quantity,
            uploaded=uploaded,
        )
    except NotFound as e:
        raise NotFound(status_code=400) from e

    # Old files go after the response; nobody waits on it.
    if result.stale_images:
        background_tasks.add_task(blobs.delete_many_background, result.stale_images)

    return {"message": "Product updated successfully"}


@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    service: ProductService = Depends(get_product_service),
) -> dict:
    try:
        await service.delete_product(product_id)
    except NotFound as e:
        raise NotFound(status_code=400) from e
    return {"message": "Product and associated images deleted successfully"}
