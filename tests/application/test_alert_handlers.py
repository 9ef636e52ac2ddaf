"""Integration tests for the alert and catalog use cases."""

import pytest

from ims.application.manage_alerts import (
    AcknowledgeAlertHandler,
    CountActiveAlertsHandler,
    DeleteAlertHandler,
    ListAlertsHandler,
    ResolveAlertHandler,
    ShowAlertHandler,
    TriggerAlertCheckHandler,
)
from ims.application.manage_stock import (
    LowStockHandler,
    MarkDamagedHandler,
    OpenStockHandler,
    ReceiveStockHandler,
    ReorderRecommendationsHandler,
    ShowInventoryHandler,
    TotalAvailableHandler,
)
from ims.application.register_catalog import AddProductHandler, AddWarehouseHandler
from ims.domain.events import EventBus
from ims.domain.exceptions import ValidationError
from ims.domain.service.alert_engine import AlertEngine
from ims.domain.service.inventory_ledger import InventoryLedger
from tests.fakes import (
    FakeAlertRepository,
    FakeProductRepository,
    FakeStockRepository,
    FakeWarehouseRepository,
)


def _setup() -> tuple[InventoryLedger, AlertEngine]:
    """Register one product (threshold 5) and warehouse, then open its stock at 10."""
    products = FakeProductRepository()
    warehouses = FakeWarehouseRepository()
    AddProductHandler(products, default_threshold=10).handle("SKU-1", "Widget", 5)
    AddWarehouseHandler(warehouses).handle("WH-1", "Main", "Dock 4")
    ledger = InventoryLedger(FakeStockRepository(), products, warehouses, EventBus())
    engine = AlertEngine(FakeAlertRepository(), ledger, products)
    OpenStockHandler(ledger).handle("SKU-1", "WH-1", 10)
    return ledger, engine


class TestCatalog:

    def test_default_threshold_applies(self):
        products = FakeProductRepository()
        product = AddProductHandler(products, default_threshold=10).handle("SKU-9", "Thing")
        assert product.minimum_stock_threshold == 10

    def test_duplicate_product_rejected(self):
        products = FakeProductRepository()
        handler = AddProductHandler(products, default_threshold=10)
        handler.handle("SKU-9", "Thing")
        with pytest.raises(ValidationError, match="already exists"):
            handler.handle("SKU-9", "Thing again")


class TestStockHandlers:

    def test_damage_and_receive(self):
        ledger, _ = _setup()
        MarkDamagedHandler(ledger).handle("SKU-1", "WH-1", 4)
        dto = ReceiveStockHandler(ledger).handle("SKU-1", "WH-1", 1)
        assert (dto.available, dto.damaged) == (7, 4)
        [row] = ShowInventoryHandler(ledger).handle(product_id="SKU-1")
        assert row.available == 7


class TestAlertFlow:

    def test_acknowledge_then_resolve_then_delete(self):
        ledger, engine = _setup()
        MarkDamagedHandler(ledger).handle("SKU-1", "WH-1", 6)

        [alert] = ListAlertsHandler(engine).handle(status="active")
        assert alert.alert_type == "LOW_STOCK"
        assert alert.suggested_reorder_quantity == 6
        assert CountActiveAlertsHandler(engine).handle() == 1

        AcknowledgeAlertHandler(engine).handle(alert.id)
        assert CountActiveAlertsHandler(engine).handle() == 0

        resolved = ResolveAlertHandler(engine).handle(alert.id, "ordered 50 units")
        assert resolved.status == "RESOLVED"
        assert "ordered 50 units" in ShowAlertHandler(engine).handle(alert.id).notes

        DeleteAlertHandler(engine).handle(alert.id)
        assert ListAlertsHandler(engine).handle() == []

    def test_filter_by_type(self):
        ledger, engine = _setup()
        MarkDamagedHandler(ledger).handle("SKU-1", "WH-1", 10)
        [oos] = ListAlertsHandler(engine).handle(alert_type="out_of_stock")
        assert oos.current_stock_at_creation == 0

    def test_unknown_filter_rejected(self):
        _, engine = _setup()
        with pytest.raises(ValidationError, match="expected one of"):
            ListAlertsHandler(engine).handle(status="SNOOZED")

    def test_trigger_check_report(self):
        ledger, engine = _setup()
        report = TriggerAlertCheckHandler(engine).handle()
        assert report["stock_records"] == 1
        assert report["low_stock_records"] == 0
        assert report["alerts_created"] == 0

    def test_total_available(self):
        ledger, _ = _setup()
        assert TotalAvailableHandler(ledger).handle("SKU-1") == 10


class TestStockLevelQueries:

    def test_low_stock_and_reorder(self):
        ledger, engine = _setup()
        assert LowStockHandler(engine).handle() == []
        MarkDamagedHandler(ledger).handle("SKU-1", "WH-1", 7)

        [low] = LowStockHandler(engine).handle(warehouse_id="WH-1")
        assert (low.product_id, low.available, low.threshold) == ("SKU-1", 3, 5)

        [rec] = ReorderRecommendationsHandler(engine).handle()
        assert (rec.optimal_stock_level, rec.suggested_reorder_quantity) == (10, 7)

    def test_other_warehouse_filtered_out(self):
        ledger, engine = _setup()
        MarkDamagedHandler(ledger).handle("SKU-1", "WH-1", 10)
        assert ReorderRecommendationsHandler(engine).handle(warehouse_id="WH-2") == []
