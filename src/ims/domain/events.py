"""Domain events and a minimal synchronous event bus.

The Inventory Ledger publishes ``StockChanged`` after every successful
write; the Alert Engine subscribes to it. External observers (e.g. a
notification system) may subscribe to any event type.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StockChanged:
    product_id: str
    warehouse_id: str
    new_available: int
    operation: str


@dataclass(frozen=True)
class AlertCreated:
    alert_id: int
    product_id: str
    warehouse_id: str
    alert_type: str


@dataclass(frozen=True)
class AlertResolved:
    alert_id: int
    product_id: str
    warehouse_id: str
    alert_type: str
    automatic: bool


@dataclass(frozen=True)
class OrderStatusChanged:
    order_id: int
    kind: str
    old_status: str | None
    new_status: str


Handler = Callable[[Any], None]


class EventBus:
    """Delivers events synchronously, in publish order, on the caller's thread.

    A failing subscriber is logged and skipped: the change that produced the
    event has already been committed and other subscribers still get it.
    """

    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_type: type, handler: Handler) -> None:
        with self._lock:
            self._handlers[event_type].append(handler)

    def publish(self, event: Any) -> None:
        with self._lock:
            handlers = list(self._handlers.get(type(event), ()))
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "event.handler_failed",
                    extra={"event": type(event).__name__, "handler": repr(handler)},
                )
