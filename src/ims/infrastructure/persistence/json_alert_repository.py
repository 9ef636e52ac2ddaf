"""JSON-file-backed implementation of AlertRepository."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from ims.domain.model.alert import Alert, AlertStatus, AlertType
from ims.domain.repository.alert_repository import AlertRepository
from ims.infrastructure.persistence.json_store import JsonFileStore


class JsonAlertRepository(AlertRepository):

    def __init__(self, file_path: Path, lock_timeout: float = 30.0) -> None:
        self._store = JsonFileStore(file_path, lock_timeout)

    # --- AlertRepository interface --------------------------------------------

    def get_by_id(self, alert_id: int) -> Alert | None:
        for raw in self._store.load():
            if raw["id"] == alert_id:
                return self._to_domain(raw)
        return None

    def list_all(self) -> list[Alert]:
        return [self._to_domain(raw) for raw in self._store.load()]

    def save(self, alert: Alert) -> None:
        with self._store.lock:
            if alert.id is None:
                alert.id = self._store.next_id()
            self._store.upsert(self._to_raw(alert), ("id",))

    def delete(self, alert_id: int) -> None:
        with self._store.lock:
            alerts = [raw for raw in self._store.load() if raw["id"] != alert_id]
            self._store.persist(alerts)

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(alert: Alert) -> dict:
        return {
            "id": alert.id,
            "product_id": alert.product_id,
            "warehouse_id": alert.warehouse_id,
            "alert_type": alert.alert_type.value,
            "status": alert.status.value,
            "threshold": alert.threshold,
            "current_stock_at_creation": alert.current_stock_at_creation,
            "suggested_reorder_quantity": alert.suggested_reorder_quantity,
            "optimal_stock_level": alert.optimal_stock_level,
            "notes": alert.notes,
            "created_at": alert.created_at.isoformat(),
            "updated_at": alert.updated_at.isoformat(),
        }

    @staticmethod
    def _to_domain(raw: dict) -> Alert:
        return Alert(
            id=raw["id"],
            product_id=raw["product_id"],
            warehouse_id=raw["warehouse_id"],
            alert_type=AlertType(raw["alert_type"]),
            threshold=raw["threshold"],
            current_stock_at_creation=raw["current_stock_at_creation"],
            suggested_reorder_quantity=raw["suggested_reorder_quantity"],
            optimal_stock_level=raw["optimal_stock_level"],
            status=AlertStatus(raw["status"]),
            notes=raw.get("notes", ""),
            created_at=datetime.fromisoformat(raw["created_at"]),
            updated_at=datetime.fromisoformat(raw["updated_at"]),
        )
