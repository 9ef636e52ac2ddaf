"""JSON-file-backed implementation of StockRepository."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from ims.domain.model.stock import StockKey, StockRecord
from ims.domain.repository.stock_repository import StockRepository
from ims.infrastructure.persistence.json_store import JsonFileStore


class JsonStockRepository(StockRepository):

    def __init__(self, file_path: Path, lock_timeout: float = 30.0) -> None:
        self._store = JsonFileStore(file_path, lock_timeout)

    # --- StockRepository interface --------------------------------------------

    def get(self, key: StockKey) -> StockRecord | None:
        for raw in self._store.load():
            if raw["product_id"] == key.product_id and raw["warehouse_id"] == key.warehouse_id:
                return self._to_domain(raw)
        return None

    def list_all(self) -> list[StockRecord]:
        return [self._to_domain(raw) for raw in self._store.load()]

    def save(self, record: StockRecord) -> None:
        self._store.upsert(self._to_raw(record), ("product_id", "warehouse_id"))

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(record: StockRecord) -> dict:
        return {
            "product_id": record.product_id,
            "warehouse_id": record.warehouse_id,
            "available": record.available,
            "reserved": record.reserved,
            "damaged": record.damaged,
            "last_updated": record.last_updated.isoformat(),
        }

    @staticmethod
    def _to_domain(raw: dict) -> StockRecord:
        return StockRecord(
            product_id=raw["product_id"],
            warehouse_id=raw["warehouse_id"],
            available=raw["available"],
            reserved=raw.get("reserved", 0),
            damaged=raw.get("damaged", 0),
            last_updated=datetime.fromisoformat(raw["last_updated"]),
        )
