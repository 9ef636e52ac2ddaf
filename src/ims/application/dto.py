"""Data Transfer Objects — plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field

from ims.domain.model.alert import Alert, ReorderRecommendation, StockLevel
from ims.domain.model.order import Order, OrderItem
from ims.domain.model.stock import StockSnapshot


@dataclass(frozen=True)
class OrderItemSpec:
    """Input: one requested line (product, quantity, unit price)."""

    product_id: str
    quantity: int
    unit_price: str
    notes: str = ""


@dataclass(frozen=True)
class OrderItemDTO:
    product_id: str
    quantity_requested: int
    quantity_fulfilled: int
    unit_price: str  # formatted, e.g. "$15.00"
    line_total: str
    notes: str


@dataclass(frozen=True)
class OrderDTO:
    id: int
    kind: str
    status: str
    warehouse_id: str
    counterparty: dict[str, str]
    items: list[OrderItemDTO]
    notes: str
    total: str
    created_at: str
    updated_at: str


@dataclass(frozen=True)
class StockDTO:
    product_id: str
    warehouse_id: str
    available: int
    reserved: int
    damaged: int
    last_updated: str


@dataclass(frozen=True)
class LowStockDTO:
    product_id: str
    warehouse_id: str
    available: int
    threshold: int


@dataclass(frozen=True)
class ReorderDTO:
    product_id: str
    warehouse_id: str
    available: int
    threshold: int
    optimal_stock_level: int
    suggested_reorder_quantity: int


@dataclass(frozen=True)
class AlertDTO:
    id: int
    product_id: str
    warehouse_id: str
    alert_type: str
    status: str
    threshold: int
    current_stock_at_creation: int
    suggested_reorder_quantity: int
    optimal_stock_level: int
    notes: str
    created_at: str


@dataclass(frozen=True)
class SweepDTO:
    approved: list[int] = field(default_factory=list)
    received: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)


# --- Mapping --------------------------------------------------------------------

_TIME_FORMAT = "%Y-%m-%d %H:%M:%S UTC"


def order_to_dto(order: Order) -> OrderDTO:
    return OrderDTO(
        id=order.id,  # type: ignore[arg-type]
        kind=order.kind.value,
        status=order.status.value,
        warehouse_id=order.warehouse_id,
        counterparty=asdict(order.counterparty),
        items=[_item_to_dto(item) for item in order.items],
        notes=order.notes,
        total=str(order.total),
        created_at=order.created_at.strftime(_TIME_FORMAT),
        updated_at=order.updated_at.strftime(_TIME_FORMAT),
    )


def _item_to_dto(item: OrderItem) -> OrderItemDTO:
    return OrderItemDTO(
        product_id=item.product_id,
        quantity_requested=item.quantity_requested.value,
        quantity_fulfilled=item.quantity_fulfilled,
        unit_price=str(item.unit_price),
        line_total=str(item.line_total),
        notes=item.notes,
    )


def stock_to_dto(stock: StockSnapshot) -> StockDTO:
    return StockDTO(
        product_id=stock.product_id,
        warehouse_id=stock.warehouse_id,
        available=stock.available,
        reserved=stock.reserved,
        damaged=stock.damaged,
        last_updated=stock.last_updated.strftime(_TIME_FORMAT),
    )


def low_stock_to_dto(level: StockLevel) -> LowStockDTO:
    return LowStockDTO(level.product_id, level.warehouse_id, level.available, level.threshold)


def reorder_to_dto(rec: ReorderRecommendation) -> ReorderDTO:
    return ReorderDTO(
        product_id=rec.product_id,
        warehouse_id=rec.warehouse_id,
        available=rec.available,
        threshold=rec.threshold,
        optimal_stock_level=rec.optimal_stock_level,
        suggested_reorder_quantity=rec.suggested_reorder_quantity,
    )


def alert_to_dto(alert: Alert) -> AlertDTO:
    return AlertDTO(
        id=alert.id,  # type: ignore[arg-type]
        product_id=alert.product_id,
        warehouse_id=alert.warehouse_id,
        alert_type=alert.alert_type.value,
        status=alert.status.value,
        threshold=alert.threshold,
        current_stock_at_creation=alert.current_stock_at_creation,
        suggested_reorder_quantity=alert.suggested_reorder_quantity,
        optimal_stock_level=alert.optimal_stock_level,
        notes=alert.notes,
        created_at=alert.created_at.strftime(_TIME_FORMAT),
    )
