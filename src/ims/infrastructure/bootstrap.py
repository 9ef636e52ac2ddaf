"""Composition root — wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ims.domain.events import EventBus
from ims.domain.service.alert_engine import AlertEngine
from ims.domain.service.auto_approval import AutoApprovalScheduler
from ims.domain.service.inventory_ledger import InventoryLedger
from ims.domain.service.order_state_machine import OrderStateMachine
from ims.infrastructure.config import Settings, get_settings
from ims.infrastructure.persistence.file_lock import StockKeyLocks
from ims.infrastructure.persistence.json_alert_repository import JsonAlertRepository
from ims.infrastructure.persistence.json_catalog_repository import (
    JsonProductRepository,
    JsonWarehouseRepository,
)
from ims.infrastructure.persistence.json_order_repository import JsonOrderRepository
from ims.infrastructure.persistence.json_stock_repository import JsonStockRepository

# Resolve data directory relative to the project root.
# When installed in editable mode the project root is the repo root.
_DATA_DIR = Path(__file__).resolve().parents[3] / "data"


@dataclass
class Engine:
    """The wired reconciliation engine plus the catalog it reads from."""

    settings: Settings
    events: EventBus
    products: JsonProductRepository
    warehouses: JsonWarehouseRepository
    ledger: InventoryLedger
    orders: OrderStateMachine
    alerts: AlertEngine
    scheduler: AutoApprovalScheduler


def data_dir(settings: Settings) -> Path:
    return settings.data_dir or _DATA_DIR


def build_engine(settings: Settings | None = None) -> Engine:
    settings = settings or get_settings()
    root = data_dir(settings)

    timeout = settings.lock_timeout_seconds

    events = EventBus()
    products = JsonProductRepository(root / "products.json", timeout)
    warehouses = JsonWarehouseRepository(root / "warehouses.json", timeout)
    ledger = InventoryLedger(
        JsonStockRepository(root / "stock.json", timeout),
        products,
        warehouses,
        events,
        lock_factory=StockKeyLocks(root / "locks", timeout),
    )
    orders = OrderStateMachine(
        JsonOrderRepository(root / "orders.json", timeout), ledger, products, warehouses, events
    )
    alerts = AlertEngine(
        JsonAlertRepository(root / "alerts.json", timeout), ledger, products, events
    )
    scheduler = AutoApprovalScheduler(
        orders,
        delay=settings.auto_approval_delay,
        interval=settings.sweep_interval_seconds,
        auto_receive=settings.auto_receive_after_approval,
        alert_engine=alerts,
        stock_check_interval=settings.low_stock_check_interval,
    )
    return Engine(
        settings=settings,
        events=events,
        products=products,
        warehouses=warehouses,
        ledger=ledger,
        orders=orders,
        alerts=alerts,
        scheduler=scheduler,
    )
