from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from core.errors import StoreFailure
from main import create_app
from products.dependencies import get_repository
from products.repository import serialize_images
from products.storage import BlobStore


class FakeProductRepository:
    """
    In-memory stand-in for the products table.

    Operations named in `failing` raise StoreFailure, like a broken database.
    """

    def __init__(self) -> None:
        self.rows: dict[int, dict[str, Any]] = {}
        self.next_id = 1
        self.failing: set[str] = set()

    def _check(self, op: str) -> None:
        if op in self.failing:
            raise StoreFailure(f"Failed to {op}. Database error occurred")

    def seed(self, *, images_text: str, **fields: Any) -> int:
        product_id = self.next_id
        self.next_id += 1
        self.rows[product_id] = {
            "id": product_id,
            "name": fields.get("name", "Seeded"),
            "description": fields.get("description", "seeded row"),
            "price": fields.get("price", 1),
            "quantity": fields.get("quantity", 1),
            "images": images_text,
        }
        return product_id

    async def list_products(self) -> list[dict[str, Any]]:
        self._check("list")
        return [dict(row) for _, row in sorted(self.rows.items())]

    async def get_product(self, product_id: int) -> dict[str, Any] | None:
        self._check("get")
        row = self.rows.get(product_id)
        return dict(row) if row is not None else None

    async def insert_product(self, *, name, description, price, quantity, images) -> int:
        self._check("insert")
        return self.seed(
            images_text=serialize_images(images),
            name=name,
            description=description,
            price=price,
            quantity=quantity,
        )

    async def update_product(self, product_id, *, name, description, price, quantity, images) -> None:
        self._check("update")
        if product_id in self.rows:
            self.rows[product_id].update(
                name=name,
                description=description,
                price=price,
                quantity=quantity,
                images=serialize_images(images),
            )

    async def delete_product(self, product_id: int) -> None:
        self._check("delete")
        self.rows.pop(product_id, None)


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    root = tmp_path / "uploads"
    monkeypatch.setenv("UPLOAD_DIR", str(root))
    return root


@pytest.fixture
def blobs(upload_dir) -> BlobStore:
    store = BlobStore(upload_dir)
    store.ensure_root()
    return store


@pytest.fixture
def repo() -> FakeProductRepository:
    return FakeProductRepository()


@pytest.fixture
def app(upload_dir, repo):
    app = create_app()
    app.state.blob_store.ensure_root()
    app.dependency_overrides[get_repository] = lambda: repo
    return app


@pytest.fixture
def client(app) -> TestClient:
    # No `with`: the lifespan would try to open a real Postgres pool.
    return TestClient(app)


def stored_files(root) -> list[str]:
    return sorted(p.name for p in root.iterdir()) if root.exists() else []


def jpeg(name: str = "photo.jpg", data: bytes = b"\xff\xd8\xff\xe0fake-jpeg") -> tuple:
    return ("images", (name, data, "image/jpeg"))
