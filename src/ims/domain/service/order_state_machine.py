"""Domain service: Order State Machine.

Drives purchase and sales orders through their lifecycles and performs the
matching Inventory Ledger calls. A transition either applies to every item
or to none:

- all stock keys an order touches are locked (in sorted order) for the
  whole transition, including the order save, and availability is checked
  before anything mutates
- if anything fails midway, the save included, every stock record the
  step touched is put back as it was before the error propagates
- two transitions of the same order never run at once; the loser gets
  ConcurrentModificationError instead of waiting

Ledger effects per transition:

=====================  ==========================================
sales create           reserve every item
sales >CONFIRMED       commit every reservation
sales >CANCELLED       release reservations still held
purchase >RECEIVED     receive the not-yet-received quantity
=====================  ==========================================
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator

from ims.domain.events import EventBus, OrderStatusChanged
from ims.domain.exceptions import (
    ConcurrentModificationError,
    EntityNotFoundError,
    InsufficientStockError,
    InvalidReservationStateError,
    InvalidTransitionError,
    ValidationError,
)
from ims.domain.model.order import (
    Counterparty,
    CustomerInfo,
    Order,
    OrderItem,
    OrderKind,
    OrderStatus,
    PurchaseOrderStatus,
    SalesOrderStatus,
    parse_status,
)
from ims.domain.model.stock import StockKey, utcnow
from ims.domain.repository.catalog_repository import ProductRepository, WarehouseRepository
from ims.domain.repository.order_repository import OrderRepository
from ims.domain.service.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)

# Steps that move stock; the others only change the order's status.
_LEDGER_STEPS = frozenset(
    {SalesOrderStatus.CONFIRMED, SalesOrderStatus.CANCELLED, PurchaseOrderStatus.RECEIVED}
)


class OrderStateMachine:

    def __init__(
        self,
        order_repo: OrderRepository,
        ledger: InventoryLedger,
        product_repo: ProductRepository,
        warehouse_repo: WarehouseRepository,
        events: EventBus | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._order_repo = order_repo
        self._ledger = ledger
        self._product_repo = product_repo
        self._warehouse_repo = warehouse_repo
        self._events = events or ledger.events
        self._clock = clock
        self._order_locks: dict[int, threading.Lock] = {}
        self._order_locks_guard = threading.Lock()

    # --- Creation -------------------------------------------------------------

    def create_sales_order(
        self,
        warehouse_id: str,
        customer: Counterparty,
        items: list[OrderItem],
        notes: str = "",
    ) -> Order:
        """Create a PENDING sales order, reserving stock for every item.

        All-or-nothing: on failure no reservation survives and no order is
        persisted.
        """
        order = Order.create(OrderKind.SALES, warehouse_id, customer, items, notes, self._clock())
        self._validate_references(order)

        with self._ledger.atomic(self._keys(order)):
            self._check_available(order)
            for item in order.items:
                self._ledger.reserve(
                    item.product_id, order.warehouse_id, item.quantity_requested.value
                )
            self._order_repo.save(order)

        self._announce(order, None)
        return order

    def create_purchase_order(
        self,
        warehouse_id: str,
        supplier: Counterparty,
        items: list[OrderItem],
        notes: str = "",
    ) -> Order:
        """Create a PENDING purchase order. No stock moves until receipt."""
        order = Order.create(OrderKind.PURCHASE, warehouse_id, supplier, items, notes, self._clock())
        self._validate_references(order)
        self._order_repo.save(order)
        self._announce(order, None)
        return order

    # --- Transitions ----------------------------------------------------------

    def transition(self, order_id: int, target: OrderStatus | str) -> Order:
        """Move an order to ``target``, applying the ledger effects of that step."""
        with self._exclusive(order_id):
            order = self._load(order_id)
            if isinstance(target, str):
                target = parse_status(order.kind, target)
            order.check_transition(target)
            old_status = order.status

            keys = self._keys(order) if target in _LEDGER_STEPS else []
            with self._ledger.atomic(keys):
                if target is SalesOrderStatus.CONFIRMED:
                    self._commit_reservations(order)
                elif target is SalesOrderStatus.CANCELLED:
                    self._release_reservations(order)
                elif target is PurchaseOrderStatus.RECEIVED:
                    self._receive_remaining(order)
                order.transition_to(target, self._clock())
                self._order_repo.save(order)

        self._announce(order, old_status)
        return order

    def receive_items(self, order_id: int, quantities: dict[str, int]) -> Order:
        """Record a (possibly partial) delivery against an APPROVED purchase order.

        The order becomes RECEIVED once every item is fully received.
        """
        if not quantities:
            raise ValidationError("Must specify at least one item to receive")
        for product_id, qty in quantities.items():
            if not isinstance(qty, int) or isinstance(qty, bool) or qty <= 0:
                raise ValidationError(
                    f"Received quantity for product '{product_id}' must be a positive integer"
                )

        with self._exclusive(order_id):
            order = self._load(order_id)
            if order.kind is not OrderKind.PURCHASE or order.status is not PurchaseOrderStatus.APPROVED:
                raise InvalidTransitionError(
                    f"{order.kind.value.lower()} order #{order.id}",
                    order.status.value,
                    PurchaseOrderStatus.RECEIVED.value,
                )
            for product_id, qty in quantities.items():
                lines = [i for i in order.items if i.product_id == product_id]
                if not lines:
                    raise ValidationError(
                        f"Product ID '{product_id}' not found in order #{order.id}"
                    )
                outstanding = sum(i.remaining_quantity for i in lines)
                if qty > outstanding:
                    raise ValidationError(
                        f"Cannot receive {qty} of product '{product_id}' "
                        f"(only {outstanding} outstanding on order #{order.id})"
                    )

            old_status = order.status
            keys = [StockKey(pid, order.warehouse_id) for pid in quantities]
            with self._ledger.atomic(keys):
                for product_id, qty in quantities.items():
                    self._ledger.receive_stock(product_id, order.warehouse_id, qty)
                    _spread_fulfillment(order, product_id, qty)
                if order.is_fully_fulfilled:
                    order.transition_to(PurchaseOrderStatus.RECEIVED, self._clock())
                else:
                    order.touch(self._clock())
                self._order_repo.save(order)

        if order.status is not old_status:
            self._announce(order, old_status)
        return order

    def delete_order(self, order_id: int) -> None:
        """Delete a PENDING purchase order or a sales order in a terminal state."""
        with self._exclusive(order_id):
            order = self._load(order_id)
            if order.kind is OrderKind.PURCHASE and order.status is not PurchaseOrderStatus.PENDING:
                raise ValidationError("Can only delete PENDING purchase orders")
            if order.kind is OrderKind.SALES and not order.is_terminal:
                raise ValidationError(
                    "Sales orders must be cancelled or delivered before deletion"
                )
            self._order_repo.delete(order_id)
        logger.info("order.deleted", extra={"order_id": order_id, "kind": order.kind.value})

    # --- Queries --------------------------------------------------------------

    def get_order(self, order_id: int) -> Order:
        return self._load(order_id)

    def list_orders(
        self,
        kind: OrderKind | None = None,
        status: OrderStatus | None = None,
        warehouse_id: str | None = None,
        customer_email: str | None = None,
    ) -> list[Order]:
        """Orders matching every given filter; the email match ignores case."""
        email = customer_email.strip().lower() if customer_email else None
        return [
            o for o in self._order_repo.list_all()
            if (kind is None or o.kind is kind)
            and (status is None or o.status is status)
            and (warehouse_id is None or o.warehouse_id == warehouse_id)
            and (email is None or _customer_email(o) == email)
        ]

    # --- Ledger effects -------------------------------------------------------

    def _check_available(self, order: Order) -> None:
        for product_id, qty in order.quantities_by_product().items():
            stock = self._ledger.get_stock(product_id, order.warehouse_id)
            if stock.available < qty:
                raise InsufficientStockError(product_id, order.warehouse_id, stock.available, qty)

    # Callers hold the order's stock keys through ``ledger.atomic``.

    def _commit_reservations(self, order: Order) -> None:
        for product_id, qty in self._held_reservations(order).items():
            stock = self._ledger.get_stock(product_id, order.warehouse_id)
            if stock.reserved < qty:
                raise InvalidReservationStateError(
                    f"Order #{order.id} holds {qty} of product '{product_id}' "
                    f"but only {stock.reserved} are reserved in '{order.warehouse_id}'"
                )
        for item in order.items:
            if item.remaining_quantity > 0:
                self._ledger.commit_reservation(
                    item.product_id, order.warehouse_id, item.remaining_quantity
                )
                item.fulfill(item.remaining_quantity)

    def _release_reservations(self, order: Order) -> None:
        for item in order.items:
            if item.remaining_quantity > 0:
                self._ledger.release_reservation(
                    item.product_id, order.warehouse_id, item.remaining_quantity
                )

    def _receive_remaining(self, order: Order) -> None:
        for item in order.items:
            if item.remaining_quantity > 0:
                self._ledger.receive_stock(
                    item.product_id, order.warehouse_id, item.remaining_quantity
                )
                item.fulfill(item.remaining_quantity)

    @staticmethod
    def _held_reservations(order: Order) -> dict[str, int]:
        held: dict[str, int] = {}
        for item in order.items:
            if item.remaining_quantity > 0:
                held[item.product_id] = held.get(item.product_id, 0) + item.remaining_quantity
        return held

    # --- Internal helpers -----------------------------------------------------

    def _validate_references(self, order: Order) -> None:
        if self._warehouse_repo.get_by_id(order.warehouse_id) is None:
            raise EntityNotFoundError(f"Warehouse not found: '{order.warehouse_id}'")
        for product_id in order.quantities_by_product():
            if self._product_repo.get_by_id(product_id) is None:
                raise EntityNotFoundError(f"Product not found: '{product_id}'")
            if not self._ledger.has_stock_record(product_id, order.warehouse_id):
                raise EntityNotFoundError(
                    f"No stock record for product '{product_id}' "
                    f"in warehouse '{order.warehouse_id}'"
                )

    @staticmethod
    def _keys(order: Order) -> list[StockKey]:
        return [StockKey(pid, order.warehouse_id) for pid in order.quantities_by_product()]

    def _load(self, order_id: int) -> Order:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundError(f"Order #{order_id} not found")
        return order

    @contextmanager
    def _exclusive(self, order_id: int) -> Iterator[None]:
        with self._order_locks_guard:
            lock = self._order_locks.setdefault(order_id, threading.Lock())
        if not lock.acquire(blocking=False):
            raise ConcurrentModificationError(
                f"Order #{order_id} is already being modified; retry later"
            )
        try:
            yield
        finally:
            lock.release()

    def _announce(self, order: Order, old_status: OrderStatus | None) -> None:
        logger.info(
            "order.status_changed",
            extra={
                "order_id": order.id,
                "kind": order.kind.value,
                "old_status": old_status.value if old_status else None,
                "new_status": order.status.value,
            },
        )
        self._events.publish(
            OrderStatusChanged(
                order_id=order.id,  # type: ignore[arg-type]
                kind=order.kind.value,
                old_status=old_status.value if old_status else None,
                new_status=order.status.value,
            )
        )


def _customer_email(order: Order) -> str | None:
    party = order.counterparty
    if isinstance(party, CustomerInfo):
        return party.email.strip().lower()
    return None

def _spread_fulfillment(order: Order, product_id: str, qty: int) -> None:
    """Apply a received quantity across the order's lines for one product."""
    left = qty
    for item in order.items:
        if item.product_id != product_id or item.remaining_quantity == 0:
            continue
        step = min(left, item.remaining_quantity)
        item.fulfill(step)
        left -= step
        if left == 0:
            return
