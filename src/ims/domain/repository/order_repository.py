"""Abstract repository for Order aggregate.

Implementations must perform an optimistic version check in ``save``:
persisting an order whose ``version`` differs from the stored one raises
ConcurrentModificationError, as does saving an order that has an id but
is no longer stored (deleted meanwhile). A successful save bumps
``version`` by one.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ims.domain.model.order import Order


class OrderRepository(ABC):

    @abstractmethod
    def get_by_id(self, order_id: int) -> Order | None:
        """Return an order by its ID, or None if not found."""

    @abstractmethod
    def list_all(self) -> list[Order]:
        """Return every order, oldest first."""

    @abstractmethod
    def save(self, order: Order) -> None:
        """Persist a new or updated order, assigning an ID to new ones."""

    @abstractmethod
    def delete(self, order_id: int) -> None:
        """Remove an order. Missing IDs are ignored."""
