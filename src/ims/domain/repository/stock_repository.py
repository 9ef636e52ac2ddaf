"""Abstract repository for StockRecord aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ims.domain.model.stock import StockKey, StockRecord


class StockRepository(ABC):

    @abstractmethod
    def get(self, key: StockKey) -> StockRecord | None:
        """Return the stock record for a (product, warehouse) key, or None."""

    @abstractmethod
    def list_all(self) -> list[StockRecord]:
        """Return every stock record."""

    @abstractmethod
    def save(self, record: StockRecord) -> None:
        """Persist a new or updated stock record."""
