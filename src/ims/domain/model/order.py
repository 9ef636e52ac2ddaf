"""Order aggregate — purchase orders and sales orders.

Both kinds share one shape and are tagged by ``OrderKind``. Each kind has
its own closed status enum, and transition legality is an explicit table:
anything not listed in ``TRANSITIONS`` is rejected.

Ledger side effects are *not* performed here; the Order State Machine
coordinates them and only then calls ``transition_to``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Union

from ims.domain.exceptions import InvalidTransitionError, ValidationError
from ims.domain.model.stock import utcnow
from ims.domain.model.value_objects import Money, Quantity


class OrderKind(Enum):
    PURCHASE = "PURCHASE"
    SALES = "SALES"


class PurchaseOrderStatus(Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    RECEIVED = "RECEIVED"


class SalesOrderStatus(Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


OrderStatus = Union[PurchaseOrderStatus, SalesOrderStatus]

STATUS_TYPES: dict[OrderKind, type[Enum]] = {
    OrderKind.PURCHASE: PurchaseOrderStatus,
    OrderKind.SALES: SalesOrderStatus,
}

TRANSITIONS: dict[Enum, frozenset[Enum]] = {
    PurchaseOrderStatus.PENDING: frozenset({PurchaseOrderStatus.APPROVED}),
    PurchaseOrderStatus.APPROVED: frozenset({PurchaseOrderStatus.RECEIVED}),
    PurchaseOrderStatus.RECEIVED: frozenset(),
    SalesOrderStatus.PENDING: frozenset(
        {SalesOrderStatus.CONFIRMED, SalesOrderStatus.CANCELLED}
    ),
    SalesOrderStatus.CONFIRMED: frozenset(
        {SalesOrderStatus.SHIPPED, SalesOrderStatus.CANCELLED}
    ),
    SalesOrderStatus.SHIPPED: frozenset({SalesOrderStatus.DELIVERED}),
    SalesOrderStatus.DELIVERED: frozenset(),
    SalesOrderStatus.CANCELLED: frozenset(),
}


def parse_status(kind: OrderKind, raw: str) -> OrderStatus:
    """Turn a client-supplied status string into the kind's enum member."""
    status_type = STATUS_TYPES[kind]
    try:
        return status_type(raw.strip().upper())  # type: ignore[return-value]
    except (ValueError, AttributeError):
        allowed = ", ".join(s.value for s in status_type)
        raise ValidationError(
            f"Unknown {kind.value.lower()} order status {raw!r} (expected one of {allowed})"
        ) from None


def is_legal_transition(current: Enum, target: Enum) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


# ---------------------------------------------------------------------------
# Counterparties
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SupplierInfo:
    name: str
    contact_info: str = ""


@dataclass(frozen=True)
class CustomerInfo:
    name: str
    email: str = ""
    shipping_address: str = ""
    billing_address: str = ""


Counterparty = Union[SupplierInfo, CustomerInfo]


@dataclass
class OrderItem:
    """One product line on an order.

    ``quantity_fulfilled`` counts units received (purchase) or committed
    out of the warehouse (sales). It only ever increases.
    """

    product_id: str
    quantity_requested: Quantity
    unit_price: Money
    quantity_fulfilled: int = 0
    notes: str = ""

    def __post_init__(self) -> None:
        if self.unit_price.amount <= 0:
            raise ValidationError(
                f"Unit price for product '{self.product_id}' must be positive, "
                f"got {self.unit_price.amount}"
            )

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity_requested.value

    @property
    def remaining_quantity(self) -> int:
        return self.quantity_requested.value - self.quantity_fulfilled

    @property
    def is_fully_fulfilled(self) -> bool:
        return self.remaining_quantity == 0

    def fulfill(self, qty: int) -> None:
        """Record that *qty* more units have been received or committed."""
        if qty <= 0:
            raise ValidationError("Fulfilled quantity must be positive")
        if qty > self.remaining_quantity:
            raise ValidationError(
                f"Cannot fulfill {qty} of product '{self.product_id}' "
                f"— only {self.remaining_quantity} remaining"
            )
        self.quantity_fulfilled += qty


MAX_LINE_ITEMS = 100


@dataclass
class Order:
    """Aggregate root for purchase and sales orders.

    Use ``Order.create()`` for new orders — it enforces all creation
    rules. The ``__init__`` is intentionally simple so the repository can
    reconstitute persisted orders without re-validating.
    """

    id: int | None
    kind: OrderKind
    warehouse_id: str
    counterparty: Counterparty
    items: list[OrderItem]
    status: OrderStatus = PurchaseOrderStatus.PENDING
    notes: str = ""
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    version: int = 0

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def create(
        kind: OrderKind,
        warehouse_id: str,
        counterparty: Counterparty,
        items: list[OrderItem],
        notes: str = "",
        now: datetime | None = None,
    ) -> Order:
        if not warehouse_id or not warehouse_id.strip():
            raise ValidationError("Warehouse is required")
        if not counterparty.name or not counterparty.name.strip():
            who = "Supplier" if kind is OrderKind.PURCHASE else "Customer"
            raise ValidationError(f"{who} name is required")
        if kind is OrderKind.PURCHASE and not isinstance(counterparty, SupplierInfo):
            raise ValidationError("Purchase orders need supplier details")
        if kind is OrderKind.SALES and not isinstance(counterparty, CustomerInfo):
            raise ValidationError("Sales orders need customer details")
        if not items:
            raise ValidationError("Order must contain at least one item")
        if len(items) > MAX_LINE_ITEMS:
            raise ValidationError(f"Maximum {MAX_LINE_ITEMS} items per order")

        created = now or utcnow()
        initial = STATUS_TYPES[kind]["PENDING"]
        return Order(
            id=None,
            kind=kind,
            warehouse_id=warehouse_id.strip(),
            counterparty=counterparty,
            items=list(items),
            status=initial,  # type: ignore[arg-type]
            notes=notes or "",
            created_at=created,
            updated_at=created,
        )

    # --- State transitions ----------------------------------------------------

    def check_transition(self, target: OrderStatus) -> None:
        """Raise InvalidTransitionError unless ``target`` may follow the current status."""
        if not isinstance(target, STATUS_TYPES[self.kind]) or not is_legal_transition(
            self.status, target
        ):
            raise InvalidTransitionError(
                f"{self.kind.value.lower()} order #{self.id}",
                self.status.value,
                getattr(target, "value", str(target)),
            )

    def transition_to(self, target: OrderStatus, now: datetime | None = None) -> None:
        self.check_transition(target)
        self.status = target
        self.touch(now)

    def touch(self, now: datetime | None = None) -> None:
        self.updated_at = now or utcnow()

    # --- Computed properties --------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self.status]

    @property
    def total(self) -> Money:
        return Money.sum(item.line_total for item in self.items)

    @property
    def is_fully_fulfilled(self) -> bool:
        return all(item.is_fully_fulfilled for item in self.items)

    def quantities_by_product(self) -> dict[str, int]:
        """Requested quantity per product, merging repeated lines."""
        totals: dict[str, int] = {}
        for item in self.items:
            totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity_requested.value
        return totals
