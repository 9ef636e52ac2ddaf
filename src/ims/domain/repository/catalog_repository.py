"""Abstract repositories for catalog references.

Defined in the domain layer so the domain never depends on
infrastructure. Product and warehouse metadata are maintained elsewhere;
the engine only looks them up.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ims.domain.model.catalog import Product, Warehouse


class ProductRepository(ABC):

    @abstractmethod
    def get_by_id(self, product_id: str) -> Product | None:
        """Return a product by its ID, or None if not found."""

    @abstractmethod
    def list_all(self) -> list[Product]:
        """Return every product in the catalog."""

    @abstractmethod
    def save(self, product: Product) -> None:
        """Persist a new or updated product."""


class WarehouseRepository(ABC):

    @abstractmethod
    def get_by_id(self, warehouse_id: str) -> Warehouse | None:
        """Return a warehouse by its ID, or None if not found."""

    @abstractmethod
    def list_all(self) -> list[Warehouse]:
        """Return every warehouse."""

    @abstractmethod
    def save(self, warehouse: Warehouse) -> None:
        """Persist a new or updated warehouse."""
