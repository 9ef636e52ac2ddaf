"""StockRecord aggregate — stock counters for one product in one warehouse.

A record holds three disjoint buckets:

- ``available``: free to be reserved or sold
- ``reserved``: provisionally held against pending sales orders
- ``damaged``: removed from sellable inventory

Counters are mutated only through the Inventory Ledger, which serializes
every write per (product, warehouse) key.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from ims.domain.exceptions import (
    InsufficientStockError,
    InvalidReservationStateError,
    ValidationError,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, order=True)
class StockKey:
    """Identity of a stock record. Ordered so locks can be taken in sequence."""

    product_id: str
    warehouse_id: str

    def __str__(self) -> str:
        return f"{self.product_id}@{self.warehouse_id}"


@dataclass
class StockRecord:
    """Aggregate root for per-warehouse stock.

    Invariants:
    - ``available``, ``reserved`` and ``damaged`` are never negative
    - a reservation can never push ``available`` below zero
    """

    product_id: str
    warehouse_id: str
    available: int = 0
    reserved: int = 0
    damaged: int = 0
    last_updated: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        for name in ("available", "reserved", "damaged"):
            if getattr(self, name) < 0:
                raise ValidationError(f"Stock '{name}' cannot be negative")

    @property
    def key(self) -> StockKey:
        return StockKey(self.product_id, self.warehouse_id)

    # --- Mutations ------------------------------------------------------------

    def reserve(self, quantity: int, now: datetime | None = None) -> None:
        """Move ``quantity`` from available to reserved."""
        _require_positive(quantity, "Reservation")
        if quantity > self.available:
            raise InsufficientStockError(
                self.product_id, self.warehouse_id, self.available, quantity
            )
        self.available -= quantity
        self.reserved += quantity
        self._touch(now)

    def commit_reservation(self, quantity: int, now: datetime | None = None) -> None:
        """Permanently remove reserved stock (it has left the warehouse)."""
        _require_positive(quantity, "Commit")
        if quantity > self.reserved:
            raise InvalidReservationStateError(
                f"Cannot commit {quantity} of {self.key} "
                f"— only {self.reserved} currently reserved"
            )
        self.reserved -= quantity
        self._touch(now)

    def release_reservation(self, quantity: int, now: datetime | None = None) -> None:
        """Return reserved stock to available (cancellation path)."""
        _require_positive(quantity, "Release")
        if quantity > self.reserved:
            raise InvalidReservationStateError(
                f"Cannot release {quantity} of {self.key} "
                f"— only {self.reserved} currently reserved"
            )
        self.reserved -= quantity
        self.available += quantity
        self._touch(now)

    def receive(self, quantity: int, now: datetime | None = None) -> None:
        """Add newly arrived units to available stock."""
        _require_positive(quantity, "Receipt")
        self.available += quantity
        self._touch(now)

    def mark_damaged(self, quantity: int, now: datetime | None = None) -> None:
        """Move ``quantity`` from available to damaged."""
        _require_positive(quantity, "Damaged")
        if quantity > self.available:
            raise InsufficientStockError(
                self.product_id, self.warehouse_id, self.available, quantity
            )
        self.available -= quantity
        self.damaged += quantity
        self._touch(now)

    def _touch(self, now: datetime | None) -> None:
        self.last_updated = now or utcnow()


@dataclass(frozen=True)
class StockSnapshot:
    """Read-only copy of a StockRecord handed out to readers."""

    product_id: str
    warehouse_id: str
    available: int
    reserved: int
    damaged: int
    last_updated: datetime

    @staticmethod
    def of(record: StockRecord) -> StockSnapshot:
        return StockSnapshot(
            product_id=record.product_id,
            warehouse_id=record.warehouse_id,
            available=record.available,
            reserved=record.reserved,
            damaged=record.damaged,
            last_updated=record.last_updated,
        )


def _require_positive(quantity: int, what: str) -> None:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise ValidationError(f"{what} quantity must be a positive integer")
