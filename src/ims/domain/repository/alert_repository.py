"""Abstract repository for Alert aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ims.domain.model.alert import Alert


class AlertRepository(ABC):

    @abstractmethod
    def get_by_id(self, alert_id: int) -> Alert | None:
        """Return an alert by its ID, or None if not found."""

    @abstractmethod
    def list_all(self) -> list[Alert]:
        """Return every alert, oldest first."""

    @abstractmethod
    def save(self, alert: Alert) -> None:
        """Persist a new or updated alert, assigning an ID to new ones."""

    @abstractmethod
    def delete(self, alert_id: int) -> None:
        """Remove an alert. Missing IDs are ignored."""
