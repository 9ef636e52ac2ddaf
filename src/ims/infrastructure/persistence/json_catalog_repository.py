"""JSON-file-backed implementations of the catalog repositories."""

from __future__ import annotations

from pathlib import Path

from ims.domain.model.catalog import DEFAULT_MINIMUM_STOCK_THRESHOLD, Product, Warehouse
from ims.domain.repository.catalog_repository import ProductRepository, WarehouseRepository
from ims.infrastructure.persistence.json_store import JsonFileStore


class JsonProductRepository(ProductRepository):

    def __init__(self, file_path: Path, lock_timeout: float = 30.0) -> None:
        self._store = JsonFileStore(file_path, lock_timeout)

    def get_by_id(self, product_id: str) -> Product | None:
        for raw in self._store.load():
            if raw["id"] == product_id:
                return self._to_domain(raw)
        return None

    def list_all(self) -> list[Product]:
        return [self._to_domain(raw) for raw in self._store.load()]

    def save(self, product: Product) -> None:
        self._store.upsert(
            {
                "id": product.id,
                "name": product.name,
                "minimum_stock_threshold": product.minimum_stock_threshold,
            },
            ("id",),
        )

    @staticmethod
    def _to_domain(raw: dict) -> Product:
        return Product(
            id=raw["id"],
            name=raw["name"],
            minimum_stock_threshold=raw.get(
                "minimum_stock_threshold", DEFAULT_MINIMUM_STOCK_THRESHOLD
            ),
        )


class JsonWarehouseRepository(WarehouseRepository):

    def __init__(self, file_path: Path, lock_timeout: float = 30.0) -> None:
        self._store = JsonFileStore(file_path, lock_timeout)

    def get_by_id(self, warehouse_id: str) -> Warehouse | None:
        for raw in self._store.load():
            if raw["id"] == warehouse_id:
                return Warehouse(raw["id"], raw["name"], raw.get("location", ""))
        return None

    def list_all(self) -> list[Warehouse]:
        return [
            Warehouse(raw["id"], raw["name"], raw.get("location", ""))
            for raw in self._store.load()
        ]

    def save(self, warehouse: Warehouse) -> None:
        self._store.upsert(
            {"id": warehouse.id, "name": warehouse.name, "location": warehouse.location},
            ("id",),
        )
