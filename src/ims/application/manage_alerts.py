"""Application services: alert queries and the acknowledge/resolve/delete flow."""

from __future__ import annotations

from typing import Any

from ims.application.dto import AlertDTO, alert_to_dto
from ims.domain.exceptions import ValidationError
from ims.domain.model.alert import AlertStatus, AlertType
from ims.domain.service.alert_engine import AlertEngine


def _parse_enum(enum_type, raw: str | None):
    if raw is None:
        return None
    try:
        return enum_type(raw.strip().upper())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_type)
        raise ValidationError(f"Unknown value {raw!r} (expected one of {allowed})") from None


class ListAlertsHandler:

    def __init__(self, engine: AlertEngine) -> None:
        self._engine = engine

    def handle(
        self,
        status: str | None = None,
        product_id: str | None = None,
        warehouse_id: str | None = None,
        alert_type: str | None = None,
    ) -> list[AlertDTO]:
        alerts = self._engine.list_alerts(
            status=_parse_enum(AlertStatus, status),
            product_id=product_id,
            warehouse_id=warehouse_id,
            alert_type=_parse_enum(AlertType, alert_type),
        )
        return [alert_to_dto(a) for a in alerts]


class ShowAlertHandler:

    def __init__(self, engine: AlertEngine) -> None:
        self._engine = engine

    def handle(self, alert_id: int) -> AlertDTO:
        return alert_to_dto(self._engine.get_alert(alert_id))


class AcknowledgeAlertHandler:

    def __init__(self, engine: AlertEngine) -> None:
        self._engine = engine

    def handle(self, alert_id: int) -> AlertDTO:
        return alert_to_dto(self._engine.acknowledge(alert_id))


class ResolveAlertHandler:

    def __init__(self, engine: AlertEngine) -> None:
        self._engine = engine

    def handle(self, alert_id: int, note: str | None = None) -> AlertDTO:
        return alert_to_dto(self._engine.resolve(alert_id, note))


class DeleteAlertHandler:

    def __init__(self, engine: AlertEngine) -> None:
        self._engine = engine

    def handle(self, alert_id: int) -> None:
        self._engine.delete(alert_id)


class CountActiveAlertsHandler:

    def __init__(self, engine: AlertEngine) -> None:
        self._engine = engine

    def handle(self) -> int:
        return self._engine.count_active()


class TriggerAlertCheckHandler:
    """Force a re-evaluation of every stock record (diagnostics only)."""

    def __init__(self, engine: AlertEngine) -> None:
        self._engine = engine

    def handle(self) -> dict[str, Any]:
        created = self._engine.check_all()
        report = self._engine.diagnostics()
        report["alerts_created"] = len(created)
        return report
