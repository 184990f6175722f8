import asyncio
import io

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from conftest import stored_files
from core.errors import StoreFailure, ValidationError
from products import uploads


def make_upload(filename: str, content_type: str, data: bytes = b"img") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        size=len(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.mark.parametrize(
    "filename,content_type",
    [
        ("a.jpg", "image/jpeg"),
        ("a.JPEG", "image/jpeg"),
        ("a.png", "image/png"),
        ("a.Gif", "image/gif; charset=binary"),
    ],
)
def test_validate_image_accepts_image_family(filename, content_type):
    ext = uploads.validate_image(make_upload(filename, content_type))
    assert ext == "." + filename.rsplit(".", 1)[1].lower()


@pytest.mark.parametrize(
    "filename,content_type",
    [
        ("notes.txt", "text/plain"),
        ("notes.txt", "image/png"),
        ("photo.jpg", "text/plain"),
        ("photo.jpg", ""),
        ("photo", "image/jpeg"),
    ],
)
def test_validate_image_rejects_other_files(filename, content_type):
    with pytest.raises(ValidationError) as exc:
        uploads.validate_image(make_upload(filename, content_type))
    assert exc.value.status_code == 400


def test_bad_file_rejects_whole_batch_before_writing(blobs):
    files = [
        make_upload("a.jpg", "image/jpeg"),
        make_upload("b.txt", "text/plain"),
    ]
    with pytest.raises(ValidationError):
        asyncio.run(uploads.accept_images(blobs, files))
    assert stored_files(blobs.root) == []


def test_oversized_file_is_413(blobs, monkeypatch):
    monkeypatch.setenv("MAX_UPLOAD_BYTES", "8")
    files = [make_upload("a.jpg", "image/jpeg", b"small"), make_upload("b.jpg", "image/jpeg", b"x" * 9)]
    with pytest.raises(ValidationError) as exc:
        asyncio.run(uploads.accept_images(blobs, files))
    assert exc.value.status_code == 413
    assert stored_files(blobs.root) == []


def test_too_many_files(blobs):
    files = [make_upload(f"{i}.png", "image/png") for i in range(6)]
    with pytest.raises(ValidationError):
        asyncio.run(uploads.accept_images(blobs, files))
    assert stored_files(blobs.root) == []


def test_accepted_files_keep_order_and_extension(blobs):
    files = [
        make_upload("first.PNG", "image/png", b"one"),
        make_upload("second.gif", "image/gif", b"two"),
    ]
    paths = asyncio.run(uploads.accept_images(blobs, files))

    assert len(paths) == 2
    assert all(p.startswith("/uploads/") for p in paths)
    assert paths[0].endswith(".png")
    assert paths[1].endswith(".gif")
    assert blobs.path_for(paths[0]).read_bytes() == b"one"
    assert blobs.path_for(paths[1]).read_bytes() == b"two"


def test_no_files_is_empty_list(blobs):
    assert asyncio.run(uploads.accept_images(blobs, None)) == []
    assert asyncio.run(uploads.accept_images(blobs, [])) == []


def test_persist_failure_removes_partial_batch(blobs, monkeypatch):
    images = [
        uploads.AcceptedImage(filename="a.jpg", ext=".jpg", data=b"a"),
        uploads.AcceptedImage(filename="b.jpg", ext=".jpg", data=b"b"),
    ]
    original_save = blobs.save
    calls = []

    def flaky_save(ext, data):
        calls.append(ext)
        if len(calls) == 2:
            raise OSError("disk full")
        return original_save(ext, data)

    monkeypatch.setattr(blobs, "save", flaky_save)
    with pytest.raises(StoreFailure):
        uploads.persist_batch(blobs, images)
    assert stored_files(blobs.root) == []
