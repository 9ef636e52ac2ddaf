"""Tests for the JSON-file-backed repositories (real files under tmp_path)."""

import json
import threading

import pytest

from ims.domain.exceptions import ConcurrentModificationError
from ims.domain.model.alert import Alert, AlertStatus, AlertType
from ims.domain.model.catalog import Product, Warehouse
from ims.domain.model.order import (
    CustomerInfo,
    Order,
    OrderItem,
    OrderKind,
    SalesOrderStatus,
    SupplierInfo,
)
from ims.domain.model.stock import StockKey, StockRecord
from ims.domain.model.value_objects import Money, Quantity
from ims.infrastructure.persistence.file_lock import ProcessLock
from ims.infrastructure.persistence.json_alert_repository import JsonAlertRepository
from ims.infrastructure.persistence.json_catalog_repository import (
    JsonProductRepository,
    JsonWarehouseRepository,
)
from ims.infrastructure.persistence.json_order_repository import JsonOrderRepository
from ims.infrastructure.persistence.json_stock_repository import JsonStockRepository


def _sales_order() -> Order:
    return Order.create(
        OrderKind.SALES,
        "WH-1",
        CustomerInfo("Alice", email="alice@example.com"),
        [OrderItem("SKU-1", Quantity(2), Money.of("9.99"))],
    )


class TestStockRepository:

    def test_creates_empty_file(self, tmp_path):
        JsonStockRepository(tmp_path / "stock.json")
        assert json.loads((tmp_path / "stock.json").read_text()) == []

    def test_save_and_reload(self, tmp_path):
        repo = JsonStockRepository(tmp_path / "stock.json")
        repo.save(StockRecord("SKU-1", "WH-1", available=5, reserved=2, damaged=1))
        record = JsonStockRepository(tmp_path / "stock.json").get(StockKey("SKU-1", "WH-1"))
        assert (record.available, record.reserved, record.damaged) == (5, 2, 1)

    def test_save_replaces_existing_record(self, tmp_path):
        repo = JsonStockRepository(tmp_path / "stock.json")
        repo.save(StockRecord("SKU-1", "WH-1", available=5))
        repo.save(StockRecord("SKU-1", "WH-1", available=9))
        repo.save(StockRecord("SKU-1", "WH-2", available=1))
        assert len(repo.list_all()) == 2
        assert repo.get(StockKey("SKU-1", "WH-1")).available == 9


class TestCatalogRepositories:

    def test_round_trip(self, tmp_path):
        products = JsonProductRepository(tmp_path / "products.json")
        warehouses = JsonWarehouseRepository(tmp_path / "warehouses.json")
        products.save(Product("SKU-1", "Widget", minimum_stock_threshold=3))
        warehouses.save(Warehouse("WH-1", "Main", "Dock 4"))
        assert products.get_by_id("SKU-1").minimum_stock_threshold == 3
        assert warehouses.get_by_id("WH-1").location == "Dock 4"
        assert products.get_by_id("NOPE") is None


class TestOrderRepository:

    def test_assigns_ids_and_versions(self, tmp_path):
        repo = JsonOrderRepository(tmp_path / "orders.json")
        first, second = _sales_order(), _sales_order()
        repo.save(first)
        repo.save(second)
        assert (first.id, second.id) == (1, 2)
        assert first.version == 1

    def test_round_trip_keeps_counterparty_and_items(self, tmp_path):
        repo = JsonOrderRepository(tmp_path / "orders.json")
        order = _sales_order()
        repo.save(order)

        loaded = repo.get_by_id(order.id)
        assert loaded.kind is OrderKind.SALES
        assert loaded.status is SalesOrderStatus.PENDING
        assert loaded.counterparty == CustomerInfo("Alice", email="alice@example.com")
        assert loaded.items[0].unit_price == Money.of("9.99")
        assert loaded.created_at == order.created_at

    def test_purchase_order_round_trip(self, tmp_path):
        repo = JsonOrderRepository(tmp_path / "orders.json")
        order = Order.create(
            OrderKind.PURCHASE,
            "WH-1",
            SupplierInfo("Acme", "orders@acme.test"),
            [OrderItem("SKU-1", Quantity(20), Money.of("1.50"))],
        )
        repo.save(order)
        assert repo.get_by_id(order.id).counterparty == SupplierInfo("Acme", "orders@acme.test")

    def test_stale_version_rejected(self, tmp_path):
        repo = JsonOrderRepository(tmp_path / "orders.json")
        order = _sales_order()
        repo.save(order)

        a = repo.get_by_id(order.id)
        b = repo.get_by_id(order.id)
        a.transition_to(SalesOrderStatus.CONFIRMED)
        repo.save(a)
        b.transition_to(SalesOrderStatus.CANCELLED)
        with pytest.raises(ConcurrentModificationError):
            repo.save(b)
        assert repo.get_by_id(order.id).status is SalesOrderStatus.CONFIRMED

    def test_delete(self, tmp_path):
        repo = JsonOrderRepository(tmp_path / "orders.json")
        order = _sales_order()
        repo.save(order)
        repo.delete(order.id)
        assert repo.get_by_id(order.id) is None


class TestAlertRepository:

    def test_save_update_delete(self, tmp_path):
        repo = JsonAlertRepository(tmp_path / "alerts.json")
        alert = Alert.raise_for(StockKey("SKU-1", "WH-1"), AlertType.LOW_STOCK, 2, 5)
        repo.save(alert)
        assert alert.id == 1

        alert.acknowledge()
        repo.save(alert)
        loaded = repo.get_by_id(1)
        assert loaded.status is AlertStatus.ACKNOWLEDGED
        assert loaded.suggested_reorder_quantity == 8
        assert len(repo.list_all()) == 1

        repo.delete(1)
        assert repo.list_all() == []


class TestOrderRepositoryAfterDelete:

    def test_save_of_deleted_order_is_rejected(self, tmp_path):
        repo = JsonOrderRepository(tmp_path / "orders.json")
        order = _sales_order()
        repo.save(order)
        copy = repo.get_by_id(order.id)
        repo.delete(order.id)

        copy.transition_to(SalesOrderStatus.CANCELLED)
        with pytest.raises(ConcurrentModificationError, match="deleted"):
            repo.save(copy)
        assert repo.list_all() == []


class TestSharedFiles:

    def test_two_repositories_on_one_file_hand_out_unique_ids(self, tmp_path):
        repos = [JsonOrderRepository(tmp_path / "orders.json") for _ in range(2)]

        def create(repo):
            for _ in range(10):
                repo.save(_sales_order())

        threads = [threading.Thread(target=create, args=(repo,)) for repo in repos for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        ids = [o.id for o in repos[0].list_all()]
        assert sorted(ids) == list(range(1, 41))

    def test_lock_held_elsewhere_times_out(self, tmp_path):
        path = tmp_path / "orders.json.lock"
        holder = ProcessLock(path)
        waiter = ProcessLock(path, timeout=0.05)
        with holder:
            with pytest.raises(ConcurrentModificationError, match="Timed out"):
                with waiter:
                    pass
        with waiter:
            pass

    def test_lock_is_reentrant(self, tmp_path):
        lock = ProcessLock(tmp_path / "stock.json.lock")
        with lock:
            with lock:
                pass
        with ProcessLock(tmp_path / "stock.json.lock", timeout=0.05):
            pass
