"""Application services: register catalog references.

Full product and warehouse management lives outside the engine; these
handlers only seed the identities and thresholds the engine depends on.
"""

from __future__ import annotations

from ims.domain.exceptions import ValidationError
from ims.domain.model.catalog import Product, Warehouse
from ims.domain.repository.catalog_repository import ProductRepository, WarehouseRepository


class AddProductHandler:

    def __init__(self, product_repo: ProductRepository, default_threshold: int) -> None:
        self._product_repo = product_repo
        self._default_threshold = default_threshold

    def handle(self, product_id: str, name: str, minimum_stock_threshold: int | None = None) -> Product:
        if not name or not name.strip():
            raise ValidationError("Product name is required")
        if self._product_repo.get_by_id(product_id) is not None:
            raise ValidationError(f"Product '{product_id}' already exists")

        threshold = self._default_threshold if minimum_stock_threshold is None else minimum_stock_threshold
        product = Product(id=product_id.strip(), name=name.strip(), minimum_stock_threshold=threshold)
        self._product_repo.save(product)
        return product


class AddWarehouseHandler:

    def __init__(self, warehouse_repo: WarehouseRepository) -> None:
        self._warehouse_repo = warehouse_repo

    def handle(self, warehouse_id: str, name: str, location: str = "") -> Warehouse:
        if not name or not name.strip():
            raise ValidationError("Warehouse name is required")
        if self._warehouse_repo.get_by_id(warehouse_id) is not None:
            raise ValidationError(f"Warehouse '{warehouse_id}' already exists")

        warehouse = Warehouse(id=warehouse_id.strip(), name=name.strip(), location=location)
        self._warehouse_repo.save(warehouse)
        return warehouse
