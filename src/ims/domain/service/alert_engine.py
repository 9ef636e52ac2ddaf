"""Domain service: Alert Engine.

Keeps Alert records consistent with current stock. The engine subscribes
to ``StockChanged`` and re-evaluates the affected (product, warehouse)
key on every ledger write:

- available == 0          -> one ACTIVE OUT_OF_STOCK alert
- 0 < available <= min    -> one ACTIVE LOW_STOCK alert; open OUT_OF_STOCK
                             alerts are resolved
- available > min         -> every open alert for the key is resolved

Only ``available`` counts: reserved and damaged units cannot be sold.

Every read-modify-write of a key's alerts runs under that key's ledger
lock, the same lock the ledger holds while publishing, so evaluations of
different keys run in parallel and a key never gets two ACTIVE alerts of
one type.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterator

from ims.domain.events import AlertCreated, AlertResolved, EventBus, StockChanged
from ims.domain.exceptions import EntityNotFoundError, ValidationError
from ims.domain.model.alert import (
    Alert,
    AlertStatus,
    AlertType,
    ReorderRecommendation,
    StockLevel,
    suggest_reorder,
)
from ims.domain.model.stock import StockKey, utcnow
from ims.domain.repository.alert_repository import AlertRepository
from ims.domain.repository.catalog_repository import ProductRepository
from ims.domain.service.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)


class AlertEngine:

    def __init__(
        self,
        alert_repo: AlertRepository,
        ledger: InventoryLedger,
        product_repo: ProductRepository,
        events: EventBus | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._alert_repo = alert_repo
        self._ledger = ledger
        self._product_repo = product_repo
        self._events = events or ledger.events
        self._clock = clock
        self._events.subscribe(StockChanged, self.on_stock_changed)

    # --- Re-evaluation --------------------------------------------------------

    def on_stock_changed(self, event: StockChanged) -> None:
        self.evaluate(event.product_id, event.warehouse_id)

    def evaluate(self, product_id: str, warehouse_id: str) -> list[Alert]:
        """Bring the alerts of one stock key in line with its current stock.

        Returns the alerts created by this evaluation.
        """
        key = StockKey(product_id, warehouse_id)
        with self._ledger.locked([key]):
            stock = self._ledger.get_stock(product_id, warehouse_id)
            threshold = self._threshold_for(product_id)
            return self._reconcile(key, stock.available, threshold)

    def check_all(self) -> list[Alert]:
        """Re-evaluate every stock record (periodic re-check and diagnostics hook)."""
        created: list[Alert] = []
        for stock in self._ledger.list_stock():
            created.extend(self.evaluate(stock.product_id, stock.warehouse_id))
        logger.info("alert.check_all", extra={"alerts_created": len(created)})
        return created

    def _reconcile(self, key: StockKey, current: int, threshold: int) -> list[Alert]:
        open_alerts = [a for a in self._alert_repo.list_all() if a.key == key and a.is_open]
        created: list[Alert] = []

        if current == 0:
            created += self._ensure_active(key, AlertType.OUT_OF_STOCK, open_alerts, current, threshold)
        elif current <= threshold:
            created += self._ensure_active(key, AlertType.LOW_STOCK, open_alerts, current, threshold)
            for alert in open_alerts:
                if alert.alert_type is AlertType.OUT_OF_STOCK:
                    self._auto_resolve(alert, current)
        else:
            for alert in open_alerts:
                self._auto_resolve(alert, current)
        return created

    def _ensure_active(
        self,
        key: StockKey,
        alert_type: AlertType,
        open_alerts: list[Alert],
        current: int,
        threshold: int,
    ) -> list[Alert]:
        if any(a.alert_type is alert_type and a.status is AlertStatus.ACTIVE for a in open_alerts):
            return []
        alert = Alert.raise_for(key, alert_type, current, threshold, self._clock())
        self._alert_repo.save(alert)
        logger.warning(
            "alert.created",
            extra={
                "alert_id": alert.id,
                "key": str(key),
                "alert_type": alert_type.value,
                "available": current,
                "threshold": threshold,
                "suggested_reorder_quantity": alert.suggested_reorder_quantity,
            },
        )
        self._events.publish(
            AlertCreated(alert.id, key.product_id, key.warehouse_id, alert_type.value)  # type: ignore[arg-type]
        )
        return [alert]

    def _auto_resolve(self, alert: Alert, current: int) -> None:
        alert.resolve(
            f"Resolved automatically - available stock is now {current}", self._clock()
        )
        self._alert_repo.save(alert)
        self._announce_resolved(alert, automatic=True)

    # --- Client operations ----------------------------------------------------

    def get_alert(self, alert_id: int) -> Alert:
        alert = self._alert_repo.get_by_id(alert_id)
        if alert is None:
            raise EntityNotFoundError(f"Alert #{alert_id} not found")
        return alert

    def list_alerts(
        self,
        status: AlertStatus | None = None,
        product_id: str | None = None,
        warehouse_id: str | None = None,
        alert_type: AlertType | None = None,
    ) -> list[Alert]:
        return [
            a for a in self._alert_repo.list_all()
            if (status is None or a.status is status)
            and (product_id is None or a.product_id == product_id)
            and (warehouse_id is None or a.warehouse_id == warehouse_id)
            and (alert_type is None or a.alert_type is alert_type)
        ]

    def count_active(self) -> int:
        """Number of ACTIVE low-stock and out-of-stock alerts (UI badge)."""
        return len(self.list_alerts(status=AlertStatus.ACTIVE))

    def acknowledge(self, alert_id: int) -> Alert:
        with self._holding(alert_id) as alert:
            alert.acknowledge(self._clock())
            self._alert_repo.save(alert)
        logger.info("alert.acknowledged", extra={"alert_id": alert_id})
        return alert

    def resolve(self, alert_id: int, note: str | None = None) -> Alert:
        with self._holding(alert_id) as alert:
            alert.resolve(note or "Resolved manually", self._clock())
            self._alert_repo.save(alert)
            self._announce_resolved(alert, automatic=False)
        return alert

    def delete(self, alert_id: int) -> None:
        with self._holding(alert_id) as alert:
            if alert.status is AlertStatus.ACTIVE:
                raise ValidationError("Cannot delete active alerts; acknowledge or resolve first")
            self._alert_repo.delete(alert_id)
        logger.info("alert.deleted", extra={"alert_id": alert_id})

    # --- Stock levels ---------------------------------------------------------

    def low_stock(self, warehouse_id: str | None = None) -> list[StockLevel]:
        """Stock records whose available units are at or below their product's threshold."""
        levels = []
        for stock in self._ledger.list_stock(warehouse_id=warehouse_id):
            threshold = self._threshold_for(stock.product_id)
            if stock.available <= threshold:
                levels.append(
                    StockLevel(stock.product_id, stock.warehouse_id, stock.available, threshold)
                )
        return levels

    def reorder_recommendations(self, warehouse_id: str | None = None) -> list[ReorderRecommendation]:
        """How much to buy for every low-stock record, most urgent first."""
        recommendations = []
        for level in self.low_stock(warehouse_id):
            suggestion = suggest_reorder(level.available, level.threshold)
            recommendations.append(
                ReorderRecommendation(
                    product_id=level.product_id,
                    warehouse_id=level.warehouse_id,
                    available=level.available,
                    threshold=level.threshold,
                    optimal_stock_level=suggestion.optimal_stock_level,
                    suggested_reorder_quantity=suggestion.suggested_reorder_quantity,
                )
            )
        return sorted(recommendations, key=lambda r: (r.available, r.product_id, r.warehouse_id))

    def diagnostics(self) -> dict[str, Any]:
        """Snapshot of stock versus thresholds, for troubleshooting."""
        low = self.low_stock()
        return {
            "stock_records": len(self._ledger.list_stock()),
            "low_stock_records": len(low),
            "low_stock_details": [
                {
                    "product_id": level.product_id,
                    "warehouse_id": level.warehouse_id,
                    "available": level.available,
                    "threshold": level.threshold,
                }
                for level in low
            ],
            "active_alerts": self.count_active(),
        }

    # --- Internal helpers -----------------------------------------------------

    @contextmanager
    def _holding(self, alert_id: int) -> Iterator[Alert]:
        """Yield a fresh copy of the alert while its stock key is locked."""
        key = self.get_alert(alert_id).key
        with self._ledger.locked([key]):
            yield self.get_alert(alert_id)

    def _threshold_for(self, product_id: str) -> int:
        product = self._product_repo.get_by_id(product_id)
        if product is None:
            raise EntityNotFoundError(f"Product not found: '{product_id}'")
        return product.minimum_stock_threshold

    def _announce_resolved(self, alert: Alert, automatic: bool) -> None:
        logger.info(
            "alert.resolved",
            extra={"alert_id": alert.id, "key": str(alert.key), "automatic": automatic},
        )
        self._events.publish(
            AlertResolved(
                alert.id,  # type: ignore[arg-type]
                alert.product_id,
                alert.warehouse_id,
                alert.alert_type.value,
                automatic,
            )
        )
