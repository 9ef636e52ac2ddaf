"""Alert aggregate and the reorder suggestion policy.

An alert is raised against one (product, warehouse) stock record when its
available stock drops to or below the product's minimum threshold. The
reorder suggestion is computed once, at creation, and frozen on the alert.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ims.domain.exceptions import InvalidTransitionError
from ims.domain.model.stock import StockKey, utcnow

OPTIMAL_STOCK_MULTIPLIER = 2
MINIMUM_REORDER_QUANTITY = 1


class AlertType(Enum):
    LOW_STOCK = "LOW_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"


class AlertStatus(Enum):
    ACTIVE = "ACTIVE"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    RESOLVED = "RESOLVED"


OPEN_STATUSES = frozenset({AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED})


@dataclass(frozen=True)
class ReorderSuggestion:
    optimal_stock_level: int
    suggested_reorder_quantity: int


def suggest_reorder(current_stock: int, threshold: int) -> ReorderSuggestion:
    """Target a buffer above the threshold and order the gap (at least 1 unit)."""
    optimal = max(threshold * OPTIMAL_STOCK_MULTIPLIER, threshold + 1)
    quantity = max(optimal - current_stock, MINIMUM_REORDER_QUANTITY)
    return ReorderSuggestion(optimal_stock_level=optimal, suggested_reorder_quantity=quantity)


@dataclass(frozen=True)
class StockLevel:
    """Available units of one stock record next to its product's threshold."""

    product_id: str
    warehouse_id: str
    available: int
    threshold: int


@dataclass(frozen=True)
class ReorderRecommendation:
    product_id: str
    warehouse_id: str
    available: int
    threshold: int
    optimal_stock_level: int
    suggested_reorder_quantity: int


@dataclass
class Alert:
    id: int | None
    product_id: str
    warehouse_id: str
    alert_type: AlertType
    threshold: int
    current_stock_at_creation: int
    suggested_reorder_quantity: int
    optimal_stock_level: int
    status: AlertStatus = AlertStatus.ACTIVE
    notes: str = ""
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @staticmethod
    def raise_for(
        key: StockKey,
        alert_type: AlertType,
        current_stock: int,
        threshold: int,
        now: datetime | None = None,
    ) -> Alert:
        suggestion = suggest_reorder(current_stock, threshold)
        created = now or utcnow()
        return Alert(
            id=None,
            product_id=key.product_id,
            warehouse_id=key.warehouse_id,
            alert_type=alert_type,
            threshold=threshold,
            current_stock_at_creation=current_stock,
            suggested_reorder_quantity=suggestion.suggested_reorder_quantity,
            optimal_stock_level=suggestion.optimal_stock_level,
            notes="Automatically generated alert with reorder suggestion",
            created_at=created,
            updated_at=created,
        )

    @property
    def key(self) -> StockKey:
        return StockKey(self.product_id, self.warehouse_id)

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    def acknowledge(self, now: datetime | None = None) -> None:
        """ACTIVE -> ACKNOWLEDGED."""
        if self.status is not AlertStatus.ACTIVE:
            raise InvalidTransitionError(
                f"alert #{self.id}", self.status.value, AlertStatus.ACKNOWLEDGED.value
            )
        self.status = AlertStatus.ACKNOWLEDGED
        self.updated_at = now or utcnow()

    def resolve(self, note: str | None = None, now: datetime | None = None) -> None:
        """ACTIVE|ACKNOWLEDGED -> RESOLVED."""
        if not self.is_open:
            raise InvalidTransitionError(
                f"alert #{self.id}", self.status.value, AlertStatus.RESOLVED.value
            )
        self.status = AlertStatus.RESOLVED
        if note:
            self.notes = f"{self.notes}\n{note}" if self.notes else note
        self.updated_at = now or utcnow()
