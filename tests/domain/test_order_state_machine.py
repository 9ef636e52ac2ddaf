"""Unit tests for the OrderStateMachine domain service."""

import threading

import pytest

from ims.domain.events import EventBus, OrderStatusChanged, StockChanged
from ims.domain.exceptions import (
    ConcurrentModificationError,
    EntityNotFoundError,
    InsufficientStockError,
    InvalidTransitionError,
    ValidationError,
)
from ims.domain.model.catalog import Product, Warehouse
from ims.domain.model.order import (
    CustomerInfo,
    OrderItem,
    OrderKind,
    PurchaseOrderStatus,
    SalesOrderStatus,
    SupplierInfo,
)
from ims.domain.model.stock import StockRecord
from ims.domain.model.value_objects import Money, Quantity
from ims.domain.service.inventory_ledger import InventoryLedger
from ims.domain.service.order_state_machine import OrderStateMachine
from tests.fakes import (
    FakeOrderRepository,
    FakeProductRepository,
    FakeStockRepository,
    FakeWarehouseRepository,
)


class _Harness:
    def __init__(self, *records: StockRecord) -> None:
        self.bus = EventBus()
        self.stock_events: list[StockChanged] = []
        self.order_events: list[OrderStatusChanged] = []
        self.bus.subscribe(StockChanged, self.stock_events.append)
        self.bus.subscribe(OrderStatusChanged, self.order_events.append)

        products = FakeProductRepository([
            Product("SKU-1", "Widget", minimum_stock_threshold=5),
            Product("SKU-2", "Gadget", minimum_stock_threshold=5),
        ])
        warehouses = FakeWarehouseRepository([Warehouse("WH-1", "Main")])
        self.order_repo = FakeOrderRepository()
        self.ledger = InventoryLedger(FakeStockRepository(list(records)), products, warehouses, self.bus)
        self.sm = OrderStateMachine(self.order_repo, self.ledger, products, warehouses, self.bus)

    def stock(self, product_id: str = "SKU-1"):
        return self.ledger.get_stock(product_id, "WH-1")


def _item(product_id: str = "SKU-1", qty: int = 1) -> OrderItem:
    return OrderItem(product_id, Quantity(qty), Money.of("10.00"))


def _sell(h: _Harness, *items: OrderItem):
    return h.sm.create_sales_order("WH-1", CustomerInfo("Alice"), list(items))


def _buy(h: _Harness, *items: OrderItem):
    return h.sm.create_purchase_order("WH-1", SupplierInfo("Acme"), list(items))


class TestCreateSalesOrder:

    def test_reserves_every_item(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=10))
        order = _sell(h, _item(qty=3))

        assert order.id == 1
        assert order.status is SalesOrderStatus.PENDING
        assert (h.stock().available, h.stock().reserved) == (7, 3)
        assert h.order_repo.get_by_id(order.id) is not None

    def test_insufficient_stock_leaves_no_trace(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=2))
        with pytest.raises(InsufficientStockError, match="requested 3, only 2"):
            _sell(h, _item(qty=3))

        assert (h.stock().available, h.stock().reserved) == (2, 0)
        assert h.order_repo.list_all() == []
        assert h.stock_events == []

    def test_multi_item_failure_reserves_nothing(self):
        h = _Harness(
            StockRecord("SKU-1", "WH-1", available=10),
            StockRecord("SKU-2", "WH-1", available=1),
        )
        with pytest.raises(InsufficientStockError):
            _sell(h, _item("SKU-1", 5), _item("SKU-2", 2))
        assert h.stock("SKU-1").available == 10
        assert h.stock("SKU-2").available == 1

    def test_repeated_lines_are_checked_together(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=5))
        with pytest.raises(InsufficientStockError):
            _sell(h, _item(qty=3), _item(qty=3))
        assert h.stock().available == 5

    def test_failure_after_reserving_rolls_back(self, monkeypatch):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=10))

        def broken_save(order):
            raise RuntimeError("disk full")

        monkeypatch.setattr(h.order_repo, "save", broken_save)
        with pytest.raises(RuntimeError):
            _sell(h, _item(qty=4))
        assert (h.stock().available, h.stock().reserved) == (10, 0)

    def test_unknown_product_rejected(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=10))
        with pytest.raises(EntityNotFoundError, match="Product not found"):
            _sell(h, _item("NOPE"))

    def test_missing_stock_record_rejected(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=10))
        with pytest.raises(EntityNotFoundError, match="No stock record"):
            _sell(h, _item("SKU-2"))

    def test_announces_creation(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=10))
        order = _sell(h, _item())
        assert h.order_events == [OrderStatusChanged(order.id, "SALES", None, "PENDING")]


class TestSalesTransitions:

    def test_confirm_commits_reservation(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=10))
        order = _sell(h, _item(qty=3))
        confirmed = h.sm.transition(order.id, SalesOrderStatus.CONFIRMED)

        assert confirmed.status is SalesOrderStatus.CONFIRMED
        assert (h.stock().available, h.stock().reserved) == (7, 0)
        assert confirmed.items[0].quantity_fulfilled == 3

    def test_cancel_pending_releases_reservation(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=10))
        order = _sell(h, _item(qty=4))
        h.sm.transition(order.id, "cancelled")
        assert (h.stock().available, h.stock().reserved) == (10, 0)

    def test_cancel_confirmed_releases_nothing(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=10))
        order = _sell(h, _item(qty=4))
        h.sm.transition(order.id, SalesOrderStatus.CONFIRMED)
        h.sm.transition(order.id, SalesOrderStatus.CANCELLED)
        assert (h.stock().available, h.stock().reserved) == (6, 0)

    def test_full_happy_path(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=10))
        order = _sell(h, _item(qty=2))
        for status in ("CONFIRMED", "SHIPPED", "DELIVERED"):
            h.sm.transition(order.id, status)
        assert h.sm.get_order(order.id).status is SalesOrderStatus.DELIVERED
        assert [e.new_status for e in h.order_events] == ["PENDING", "CONFIRMED", "SHIPPED", "DELIVERED"]

    def test_illegal_transition_changes_nothing(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=10))
        order = _sell(h, _item(qty=2))
        with pytest.raises(InvalidTransitionError):
            h.sm.transition(order.id, SalesOrderStatus.SHIPPED)
        assert h.sm.get_order(order.id).status is SalesOrderStatus.PENDING
        assert h.stock().reserved == 2

    def test_unknown_status_string_rejected(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=10))
        order = _sell(h, _item())
        with pytest.raises(ValidationError):
            h.sm.transition(order.id, "APPROVED")

    def test_unknown_order(self):
        h = _Harness()
        with pytest.raises(EntityNotFoundError):
            h.sm.transition(99, "CONFIRMED")


class TestPurchaseOrders:

    def test_create_moves_no_stock(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=0))
        order = _buy(h, _item(qty=20))
        assert order.status is PurchaseOrderStatus.PENDING
        assert h.stock().available == 0
        assert h.stock_events == []

    def test_receive_adds_remaining_quantity(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=0))
        order = _buy(h, _item(qty=20))
        h.sm.transition(order.id, PurchaseOrderStatus.APPROVED)
        received = h.sm.transition(order.id, PurchaseOrderStatus.RECEIVED)
        assert received.status is PurchaseOrderStatus.RECEIVED
        assert h.stock().available == 20

    def test_cannot_receive_before_approval(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=0))
        order = _buy(h, _item(qty=20))
        with pytest.raises(InvalidTransitionError):
            h.sm.transition(order.id, PurchaseOrderStatus.RECEIVED)
        assert h.stock().available == 0

    def test_partial_receipt_then_completion(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=0))
        order = _buy(h, _item("SKU-1", 10))
        h.sm.transition(order.id, "APPROVED")

        partial = h.sm.receive_items(order.id, {"SKU-1": 4})
        assert partial.status is PurchaseOrderStatus.APPROVED
        assert h.stock().available == 4

        done = h.sm.receive_items(order.id, {"SKU-1": 6})
        assert done.status is PurchaseOrderStatus.RECEIVED
        assert h.stock().available == 10

    def test_partial_receipt_then_full_receive_takes_the_rest(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=0))
        order = _buy(h, _item("SKU-1", 10))
        h.sm.transition(order.id, "APPROVED")
        h.sm.receive_items(order.id, {"SKU-1": 4})
        h.sm.transition(order.id, "RECEIVED")
        assert h.stock().available == 10

    def test_over_receipt_rejected(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=0))
        order = _buy(h, _item("SKU-1", 5))
        h.sm.transition(order.id, "APPROVED")
        with pytest.raises(ValidationError, match="only 5 outstanding"):
            h.sm.receive_items(order.id, {"SKU-1": 6})
        assert h.stock().available == 0

    def test_receipt_of_product_not_on_order_rejected(self):
        h = _Harness(
            StockRecord("SKU-1", "WH-1", available=0),
            StockRecord("SKU-2", "WH-1", available=0),
        )
        order = _buy(h, _item("SKU-1", 5))
        h.sm.transition(order.id, "APPROVED")
        with pytest.raises(ValidationError, match="not found in order"):
            h.sm.receive_items(order.id, {"SKU-2": 1})

    def test_receive_items_on_sales_order_rejected(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=10))
        order = _sell(h, _item())
        with pytest.raises(InvalidTransitionError):
            h.sm.receive_items(order.id, {"SKU-1": 1})


class TestDeleteOrder:

    def test_pending_purchase_order_can_be_deleted(self):
        h = _Harness(StockRecord("SKU-1", "WH-1"))
        order = _buy(h, _item())
        h.sm.delete_order(order.id)
        assert h.order_repo.get_by_id(order.id) is None

    def test_approved_purchase_order_cannot_be_deleted(self):
        h = _Harness(StockRecord("SKU-1", "WH-1"))
        order = _buy(h, _item())
        h.sm.transition(order.id, "APPROVED")
        with pytest.raises(ValidationError, match="PENDING"):
            h.sm.delete_order(order.id)

    def test_open_sales_order_cannot_be_deleted(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=5))
        order = _sell(h, _item())
        with pytest.raises(ValidationError, match="cancelled or delivered"):
            h.sm.delete_order(order.id)
        h.sm.transition(order.id, "CANCELLED")
        h.sm.delete_order(order.id)


class TestQueries:

    def test_list_orders_filters(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=10))
        _sell(h, _item())
        _buy(h, _item())
        assert len(h.sm.list_orders()) == 2
        assert len(h.sm.list_orders(kind=OrderKind.SALES)) == 1
        assert h.sm.list_orders(status=PurchaseOrderStatus.APPROVED) == []


class TestConcurrentTransitions:

    def test_stale_save_is_rejected(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=10))
        order = _sell(h, _item())
        stale = h.order_repo.get_by_id(order.id)
        h.sm.transition(order.id, "CONFIRMED")
        stale.status = SalesOrderStatus.CANCELLED
        with pytest.raises(ConcurrentModificationError):
            h.order_repo.save(stale)

    def test_save_after_delete_is_rejected(self):
        h = _Harness(StockRecord("SKU-1", "WH-1"))
        order = _buy(h, _item())
        copy = h.order_repo.get_by_id(order.id)
        h.sm.delete_order(order.id)
        with pytest.raises(ConcurrentModificationError, match="deleted"):
            h.order_repo.save(copy)
        assert h.order_repo.get_by_id(order.id) is None

    def test_second_transition_while_first_in_flight_is_rejected(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=10))
        order = _sell(h, _item(qty=3))
        inside = threading.Event()
        release = threading.Event()

        def hold_commit(event):
            if event.operation == "commit":
                inside.set()
                release.wait(timeout=5)

        h.bus.subscribe(StockChanged, hold_commit)
        worker = threading.Thread(target=h.sm.transition, args=(order.id, "CONFIRMED"))
        worker.start()
        assert inside.wait(timeout=5)
        try:
            with pytest.raises(ConcurrentModificationError, match="already being modified"):
                h.sm.transition(order.id, "CANCELLED")
        finally:
            release.set()
            worker.join(timeout=5)

        assert not worker.is_alive()
        assert h.sm.get_order(order.id).status is SalesOrderStatus.CONFIRMED
        assert (h.stock().available, h.stock().reserved) == (7, 0)

    def test_opposite_line_order_does_not_deadlock(self):
        h = _Harness(
            StockRecord("SKU-1", "WH-1", available=100),
            StockRecord("SKU-2", "WH-1", available=100),
        )
        errors = []

        def place(first, second):
            try:
                for _ in range(25):
                    _sell(h, _item(first), _item(second))
            except Exception as exc:
                errors.append(exc)

        threads = [
            threading.Thread(target=place, args=("SKU-1", "SKU-2")),
            threading.Thread(target=place, args=("SKU-2", "SKU-1")),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert not any(t.is_alive() for t in threads)
        assert errors == []
        assert len(h.order_repo.list_all()) == 50
        assert (h.stock("SKU-1").available, h.stock("SKU-1").reserved) == (50, 50)
        assert (h.stock("SKU-2").available, h.stock("SKU-2").reserved) == (50, 50)


class TestFailedSaveRestoresStock:

    @staticmethod
    def _save_copy_during(h: _Harness, operation: str, order_id: int) -> None:
        """Bump the stored order's version while the ledger step is running."""
        done = []

        def on_change(event):
            if event.operation == operation and not done:
                done.append(event)
                h.order_repo.save(h.order_repo.get_by_id(order_id))

        h.bus.subscribe(StockChanged, on_change)

    def test_confirm_keeps_reservation(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=10))
        order = _sell(h, _item(qty=3))
        self._save_copy_during(h, "commit", order.id)

        with pytest.raises(ConcurrentModificationError):
            h.sm.transition(order.id, "CONFIRMED")

        assert (h.stock().available, h.stock().reserved) == (7, 3)
        assert h.sm.get_order(order.id).status is SalesOrderStatus.PENDING
        assert h.stock_events[-1].operation == "restore"
        assert [e.new_status for e in h.order_events] == ["PENDING"]

    def test_cancel_keeps_reservation(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=10))
        order = _sell(h, _item(qty=4))
        self._save_copy_during(h, "release", order.id)

        with pytest.raises(ConcurrentModificationError):
            h.sm.transition(order.id, "CANCELLED")

        assert (h.stock().available, h.stock().reserved) == (6, 4)
        assert h.sm.get_order(order.id).status is SalesOrderStatus.PENDING

    def test_multi_item_confirm_restores_every_line(self, monkeypatch):
        h = _Harness(
            StockRecord("SKU-1", "WH-1", available=10),
            StockRecord("SKU-2", "WH-1", available=10),
        )
        order = _sell(h, _item("SKU-1", 2), _item("SKU-2", 5))

        def broken_save(order):
            raise OSError("disk full")

        monkeypatch.setattr(h.order_repo, "save", broken_save)
        with pytest.raises(OSError):
            h.sm.transition(order.id, "CONFIRMED")

        assert (h.stock("SKU-1").available, h.stock("SKU-1").reserved) == (8, 2)
        assert (h.stock("SKU-2").available, h.stock("SKU-2").reserved) == (5, 5)

    def test_receive_transition_takes_units_back(self):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=0))
        order = _buy(h, _item(qty=20))
        h.sm.transition(order.id, "APPROVED")
        self._save_copy_during(h, "receive", order.id)

        with pytest.raises(ConcurrentModificationError):
            h.sm.transition(order.id, "RECEIVED")

        assert h.stock().available == 0
        assert h.sm.get_order(order.id).status is PurchaseOrderStatus.APPROVED

    def test_partial_receipt_takes_units_back(self, monkeypatch):
        h = _Harness(StockRecord("SKU-1", "WH-1", available=0))
        order = _buy(h, _item(qty=10))
        h.sm.transition(order.id, "APPROVED")

        def broken_save(order):
            raise OSError("disk full")

        monkeypatch.setattr(h.order_repo, "save", broken_save)
        with pytest.raises(OSError):
            h.sm.receive_items(order.id, {"SKU-1": 4})

        assert h.stock().available == 0
        assert h.sm.get_order(order.id).items[0].quantity_fulfilled == 0

