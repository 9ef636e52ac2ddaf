"""Application services: stock provisioning, adjustments and queries."""

from __future__ import annotations

from ims.application.dto import (
    LowStockDTO,
    ReorderDTO,
    StockDTO,
    low_stock_to_dto,
    reorder_to_dto,
    stock_to_dto,
)
from ims.domain.service.alert_engine import AlertEngine
from ims.domain.service.inventory_ledger import InventoryLedger


class OpenStockHandler:

    def __init__(self, ledger: InventoryLedger) -> None:
        self._ledger = ledger

    def handle(self, product_id: str, warehouse_id: str, initial_available: int = 0) -> StockDTO:
        """Start tracking a product in a warehouse."""
        return stock_to_dto(self._ledger.open_stock(product_id, warehouse_id, initial_available))


class ReceiveStockHandler:
    """Book in units that arrived outside of a purchase order."""

    def __init__(self, ledger: InventoryLedger) -> None:
        self._ledger = ledger

    def handle(self, product_id: str, warehouse_id: str, quantity: int) -> StockDTO:
        return stock_to_dto(self._ledger.receive_stock(product_id, warehouse_id, quantity))


class MarkDamagedHandler:

    def __init__(self, ledger: InventoryLedger) -> None:
        self._ledger = ledger

    def handle(self, product_id: str, warehouse_id: str, quantity: int) -> StockDTO:
        return stock_to_dto(self._ledger.mark_damaged(product_id, warehouse_id, quantity))


class ShowInventoryHandler:

    def __init__(self, ledger: InventoryLedger) -> None:
        self._ledger = ledger

    def handle(
        self,
        product_id: str | None = None,
        warehouse_id: str | None = None,
    ) -> list[StockDTO]:
        return [
            stock_to_dto(s)
            for s in self._ledger.list_stock(product_id=product_id, warehouse_id=warehouse_id)
        ]


class TotalAvailableHandler:
    """Sellable units of one product across every warehouse."""

    def __init__(self, ledger: InventoryLedger) -> None:
        self._ledger = ledger

    def handle(self, product_id: str) -> int:
        return self._ledger.total_available(product_id)


class LowStockHandler:
    """Stock records at or below their product's minimum threshold."""

    def __init__(self, alert_engine: AlertEngine) -> None:
        self._alert_engine = alert_engine

    def handle(self, warehouse_id: str | None = None) -> list[LowStockDTO]:
        return [low_stock_to_dto(level) for level in self._alert_engine.low_stock(warehouse_id)]


class ReorderRecommendationsHandler:

    def __init__(self, alert_engine: AlertEngine) -> None:
        self._alert_engine = alert_engine

    def handle(self, warehouse_id: str | None = None) -> list[ReorderDTO]:
        return [
            reorder_to_dto(rec)
            for rec in self._alert_engine.reorder_recommendations(warehouse_id)
        ]
