"""Catalog references consumed by the engine.

Products and warehouses are owned by the catalog (CRUD metadata outside
the engine). The engine only needs their identity and, for products, the
minimum stock threshold that drives low-stock alerts.
"""

from __future__ import annotations

from dataclasses import dataclass

from ims.domain.exceptions import ValidationError

DEFAULT_MINIMUM_STOCK_THRESHOLD = 10


@dataclass
class Product:
    id: str
    name: str
    minimum_stock_threshold: int = DEFAULT_MINIMUM_STOCK_THRESHOLD

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            raise ValidationError("Product ID is required")
        if self.minimum_stock_threshold < 0:
            raise ValidationError("Minimum stock threshold cannot be negative")


@dataclass
class Warehouse:
    id: str
    name: str
    location: str = ""

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            raise ValidationError("Warehouse ID is required")
