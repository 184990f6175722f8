"""
Upload intake for product images.

The whole batch is validated and read into memory before anything touches
the blob store, so a rejected request never leaves files behind.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from core import config
from core.errors import StoreFailure, ValidationError

from .storage import BlobStore

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif"}
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif"}

READ_CHUNK_BYTES = 1024 * 1024  # 1 MiB


@dataclass(frozen=True)
class AcceptedImage:
    filename: str
    ext: str
    data: bytes


def _file_ext(filename: str) -> str:
    return Path(filename).suffix.lower()


def _content_type(file: UploadFile) -> str:
    return (file.content_type or "").split(";", 1)[0].strip().lower()


def _is_empty_part(file: UploadFile) -> bool:
    # Browsers submit an empty part for a file input left blank.
    return not file.filename and not file.size


def validate_image(file: UploadFile) -> str:
    """
    Return the normalized extension if this upload looks like an image.

    Both the extension and the declared content type must be in the image
    family; either one alone is easy to get wrong on the client.
    """
    if not file.filename:
        raise ValidationError("Missing filename.")

    ext = _file_ext(file.filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise ValidationError()

    if _content_type(file) not in ALLOWED_CONTENT_TYPES:
        raise ValidationError()

    return ext


async def read_upload_bytes(file: UploadFile, max_bytes: int) -> bytes:
    """
    Read the upload into memory, enforcing a maximum size.
    """
    buf = bytearray()

    while True:
        chunk = await file.read(READ_CHUNK_BYTES)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise ValidationError(
                f"File too large. Max is {max_bytes} bytes.",
                status_code=413,
            )

    return bytes(buf)


async def validate_batch(files: list[UploadFile] | None) -> list[AcceptedImage]:
    files = [f for f in (files or []) if not _is_empty_part(f)]

    max_files = config.max_upload_files()
    if len(files) > max_files:
        raise ValidationError(f"Too many files. Max is {max_files}.")

    # Check every type first so a bad file late in the batch is not read for nothing.
    exts = [validate_image(f) for f in files]

    max_bytes = config.max_upload_bytes()
    accepted: list[AcceptedImage] = []
    for file, ext in zip(files, exts):
        data = await read_upload_bytes(file, max_bytes=max_bytes)
        accepted.append(AcceptedImage(filename=file.filename or "", ext=ext, data=data))
    return accepted


def persist_batch(blobs: BlobStore, images: list[AcceptedImage]) -> list[str]:
    """
    Write accepted images in order; on a write error undo the ones already written.
    """
    paths: list[str] = []
    for image in images:
        try:
            paths.append(blobs.save(image.ext, image.data))
        except OSError as e:
            blobs.delete_many(paths)
            raise StoreFailure("Failed to store uploaded images") from e
    return paths


async def accept_images(blobs: BlobStore, files: list[UploadFile] | None) -> list[str]:
    """
    Validate the batch, then persist it. Returns the public paths, in upload order.
    """
    images = await validate_batch(files)
    return await run_in_threadpool(persist_batch, blobs, images)
