"""Domain service: Inventory Ledger.

The ledger is the sole owner of stock counters. Every write is one atomic
unit scoped to a single (product, warehouse) key:

- writes to the same key are serialized by a per-key re-entrant lock
- writes to different keys never contend
- callers touching several keys (multi-item orders) take the locks through
  ``locked()``, which always acquires them in sorted key order
- ``atomic()`` additionally puts the records back as they were if the
  block raises, so a caller can undo every ledger effect of a failed step

The per-key lock is a ``threading.RLock`` unless a ``lock_factory`` is
given; the composition root passes one that also excludes other processes.

After each successful write the ledger publishes ``StockChanged`` while
still holding the key lock, so subscribers see changes in per-key order.
"""

from __future__ import annotations

import logging
import threading
from contextlib import AbstractContextManager, ExitStack, contextmanager
from datetime import datetime
from typing import Callable, Iterable, Iterator

from ims.domain.events import EventBus, StockChanged
from ims.domain.exceptions import EntityNotFoundError, ValidationError
from ims.domain.model.stock import StockKey, StockRecord, StockSnapshot, utcnow
from ims.domain.repository.catalog_repository import ProductRepository, WarehouseRepository
from ims.domain.repository.stock_repository import StockRepository

logger = logging.getLogger(__name__)


class InventoryLedger:

    def __init__(
        self,
        stock_repo: StockRepository,
        product_repo: ProductRepository,
        warehouse_repo: WarehouseRepository,
        events: EventBus | None = None,
        clock: Callable[[], datetime] = utcnow,
        lock_factory: Callable[[StockKey], AbstractContextManager] | None = None,
    ) -> None:
        self._stock_repo = stock_repo
        self._product_repo = product_repo
        self._warehouse_repo = warehouse_repo
        self._events = events or EventBus()
        self._clock = clock
        self._lock_factory = lock_factory or (lambda key: threading.RLock())
        self._locks: dict[StockKey, AbstractContextManager] = {}
        self._locks_guard = threading.Lock()

    @property
    def events(self) -> EventBus:
        return self._events

    # --- Locking --------------------------------------------------------------

    def _lock_for(self, key: StockKey) -> AbstractContextManager:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = self._lock_factory(key)
            return lock

    @contextmanager
    def locked(self, keys: Iterable[StockKey]) -> Iterator[None]:
        """Hold the locks of every key, acquired in sorted order."""
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.enter_context(self._lock_for(key))
            yield

    @contextmanager
    def atomic(self, keys: Iterable[StockKey]) -> Iterator[None]:
        """Hold the keys' locks and undo every change to them if the block raises."""
        keys = sorted(set(keys))
        with self.locked(keys):
            before = [StockSnapshot.of(self._load(key)) for key in keys]
            try:
                yield
            except Exception:
                self._restore(before)
                raise

    # --- Provisioning ---------------------------------------------------------

    def open_stock(self, product_id: str, warehouse_id: str, initial_available: int = 0) -> StockSnapshot:
        """Create the stock record for a product in a warehouse."""
        if self._product_repo.get_by_id(product_id) is None:
            raise EntityNotFoundError(f"Product not found: '{product_id}'")
        if self._warehouse_repo.get_by_id(warehouse_id) is None:
            raise EntityNotFoundError(f"Warehouse not found: '{warehouse_id}'")
        if not isinstance(initial_available, int) or initial_available < 0:
            raise ValidationError("Initial stock must be a non-negative integer")

        key = StockKey(product_id, warehouse_id)
        with self.locked([key]):
            if self._stock_repo.get(key) is not None:
                raise ValidationError(f"Stock record already exists for {key}")
            record = StockRecord(
                product_id=product_id,
                warehouse_id=warehouse_id,
                available=initial_available,
                last_updated=self._clock(),
            )
            self._stock_repo.save(record)
            logger.info("stock.opened", extra={"key": str(key), "available": initial_available})
            self._events.publish(
                StockChanged(product_id, warehouse_id, record.available, "open")
            )
            return StockSnapshot.of(record)

    # --- Writes ---------------------------------------------------------------

    def reserve(self, product_id: str, warehouse_id: str, qty: int) -> StockSnapshot:
        """available -> reserved. Raises InsufficientStockError if available < qty."""
        return self._apply(product_id, warehouse_id, "reserve", StockRecord.reserve, qty)

    def commit_reservation(self, product_id: str, warehouse_id: str, qty: int) -> StockSnapshot:
        """Drop ``qty`` from reserved; the units have left the warehouse."""
        return self._apply(
            product_id, warehouse_id, "commit", StockRecord.commit_reservation, qty
        )

    def release_reservation(self, product_id: str, warehouse_id: str, qty: int) -> StockSnapshot:
        """reserved -> available (cancellation path)."""
        return self._apply(
            product_id, warehouse_id, "release", StockRecord.release_reservation, qty
        )

    def receive_stock(self, product_id: str, warehouse_id: str, qty: int) -> StockSnapshot:
        return self._apply(product_id, warehouse_id, "receive", StockRecord.receive, qty)

    def mark_damaged(self, product_id: str, warehouse_id: str, qty: int) -> StockSnapshot:
        return self._apply(product_id, warehouse_id, "damage", StockRecord.mark_damaged, qty)

    def _apply(
        self,
        product_id: str,
        warehouse_id: str,
        operation: str,
        mutate: Callable[[StockRecord, int, datetime], None],
        qty: int,
    ) -> StockSnapshot:
        key = StockKey(product_id, warehouse_id)
        with self.locked([key]):
            record = self._load(key)
            mutate(record, qty, self._clock())
            self._stock_repo.save(record)
            logger.info(
                "stock.%s",
                operation,
                extra={
                    "key": str(key),
                    "qty": qty,
                    "available": record.available,
                    "reserved": record.reserved,
                    "damaged": record.damaged,
                },
            )
            self._events.publish(
                StockChanged(product_id, warehouse_id, record.available, operation)
            )
            return StockSnapshot.of(record)

    def _restore(self, snapshots: list[StockSnapshot]) -> None:
        for snapshot in snapshots:
            key = StockKey(snapshot.product_id, snapshot.warehouse_id)
            record = self._load(key)
            counters = (record.available, record.reserved, record.damaged)
            if counters == (snapshot.available, snapshot.reserved, snapshot.damaged):
                continue
            record.available = snapshot.available
            record.reserved = snapshot.reserved
            record.damaged = snapshot.damaged
            record.last_updated = self._clock()
            self._stock_repo.save(record)
            logger.warning(
                "stock.restored",
                extra={
                    "key": str(key),
                    "available": record.available,
                    "reserved": record.reserved,
                    "damaged": record.damaged,
                },
            )
            self._events.publish(
                StockChanged(key.product_id, key.warehouse_id, record.available, "restore")
            )

    # --- Reads ----------------------------------------------------------------

    def get_stock(self, product_id: str, warehouse_id: str) -> StockSnapshot:
        key = StockKey(product_id, warehouse_id)
        with self.locked([key]):
            return StockSnapshot.of(self._load(key))

    def has_stock_record(self, product_id: str, warehouse_id: str) -> bool:
        return self._stock_repo.get(StockKey(product_id, warehouse_id)) is not None

    def list_stock(
        self,
        product_id: str | None = None,
        warehouse_id: str | None = None,
    ) -> list[StockSnapshot]:
        records = [
            r for r in self._stock_repo.list_all()
            if (product_id is None or r.product_id == product_id)
            and (warehouse_id is None or r.warehouse_id == warehouse_id)
        ]
        return sorted((StockSnapshot.of(r) for r in records), key=lambda s: (s.product_id, s.warehouse_id))

    def total_available(self, product_id: str) -> int:
        """Available units of a product summed over every warehouse."""
        if self._product_repo.get_by_id(product_id) is None:
            raise EntityNotFoundError(f"Product not found: '{product_id}'")
        return sum(s.available for s in self.list_stock(product_id=product_id))

    def _load(self, key: StockKey) -> StockRecord:
        record = self._stock_repo.get(key)
        if record is None:
            raise EntityNotFoundError(
                f"No stock record for product '{key.product_id}' "
                f"in warehouse '{key.warehouse_id}'"
            )
        return record
