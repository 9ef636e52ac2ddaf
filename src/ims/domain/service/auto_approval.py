"""Domain service: Auto-Approval Scheduler.

Promotes PENDING purchase orders to APPROVED once they have waited
``delay``. A sweep is idempotent: each order's status is re-read right
before acting, so an order approved by a previous sweep (or by a person)
is skipped rather than failed. Sweeps never overlap, and an order that
fails to transition is logged and skipped without stopping the batch.

Sales orders are never auto-approved.

When given an ``AlertEngine`` the background loop also re-checks every
stock record against its threshold every ``stock_check_interval``, which
catches threshold changes that no ledger write announced.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from ims.domain.exceptions import DomainException, ValidationError
from ims.domain.model.order import Order, OrderKind, PurchaseOrderStatus
from ims.domain.model.stock import utcnow
from ims.domain.service.alert_engine import AlertEngine
from ims.domain.service.order_state_machine import OrderStateMachine

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    approved: list[int] = field(default_factory=list)
    received: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)


class AutoApprovalScheduler:

    def __init__(
        self,
        state_machine: OrderStateMachine,
        delay: timedelta,
        interval: float = 5.0,
        auto_receive: bool = False,
        clock: Callable[[], datetime] = utcnow,
        alert_engine: AlertEngine | None = None,
        stock_check_interval: timedelta = timedelta(hours=1),
    ) -> None:
        if delay < timedelta(0):
            raise ValidationError("Auto-approval delay cannot be negative")
        if interval <= 0:
            raise ValidationError("Sweep interval must be positive")
        if stock_check_interval <= timedelta(0):
            raise ValidationError("Stock check interval must be positive")
        self._state_machine = state_machine
        self._delay = delay
        self._interval = interval
        self._auto_receive = auto_receive
        self._clock = clock
        self._alert_engine = alert_engine
        self._stock_check_interval = stock_check_interval
        self._next_stock_check: datetime | None = None
        self._sweep_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def due_orders(self, now: datetime | None = None) -> list[Order]:
        """PENDING purchase orders whose approval deadline has passed."""
        now = now or self._clock()
        return [
            order
            for order in self._state_machine.list_orders(
                kind=OrderKind.PURCHASE, status=PurchaseOrderStatus.PENDING
            )
            if order.created_at + self._delay <= now
        ]

    def sweep(self, now: datetime | None = None) -> SweepResult:
        """Run one approval pass. Blocks while another pass is in progress."""
        with self._sweep_lock:
            result = SweepResult()
            for order in self.due_orders(now):
                order_id: int = order.id  # type: ignore[assignment]
                try:
                    current = self._state_machine.get_order(order_id)
                    if current.status is not PurchaseOrderStatus.PENDING:
                        result.skipped.append(order_id)
                        continue
                    self._state_machine.transition(order_id, PurchaseOrderStatus.APPROVED)
                    result.approved.append(order_id)
                    if self._auto_receive:
                        self._state_machine.transition(order_id, PurchaseOrderStatus.RECEIVED)
                        result.received.append(order_id)
                except DomainException as exc:
                    result.failed[order_id] = str(exc)
                    logger.warning(
                        "auto_approval.skipped",
                        extra={"order_id": order_id, "reason": str(exc)},
                    )

            if result.approved or result.failed:
                logger.info(
                    "auto_approval.sweep",
                    extra={"approved": len(result.approved), "failed": len(result.failed)},
                )
            else:
                logger.debug("auto_approval.sweep", extra={"approved": 0, "failed": 0})
            return result

    def recheck_stock_if_due(self, now: datetime | None = None) -> bool:
        """Run the low-stock re-check if the interval has elapsed since the last one."""
        if self._alert_engine is None:
            return False
        now = now or self._clock()
        if self._next_stock_check is not None and now < self._next_stock_check:
            return False
        self._next_stock_check = now + self._stock_check_interval
        self._alert_engine.check_all()
        return True

    # --- Background loop ------------------------------------------------------

    def start(self) -> None:
        """Run sweeps every ``interval`` seconds on a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self.run_forever, name="auto-approval", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_forever(self) -> None:
        """Sweep until ``stop()`` is called. The first sweep and re-check run immediately."""
        logger.info(
            "auto_approval.started",
            extra={"delay_seconds": self._delay.total_seconds(), "interval_seconds": self._interval},
        )
        while True:
            now = self._clock()
            try:
                self.sweep(now)
            except Exception:
                logger.exception("auto_approval.sweep_failed")
            try:
                self.recheck_stock_if_due(now)
            except Exception:
                logger.exception("alert.recheck_failed")
            if self._stop.wait(self._interval):
                break
        logger.info("auto_approval.stopped")
