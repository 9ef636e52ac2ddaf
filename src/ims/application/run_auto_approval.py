"""Application service: one-off auto-approval pass (cron / CLI entry)."""

from __future__ import annotations

from ims.application.dto import SweepDTO
from ims.domain.service.auto_approval import AutoApprovalScheduler


class RunAutoApprovalHandler:

    def __init__(self, scheduler: AutoApprovalScheduler) -> None:
        self._scheduler = scheduler

    def handle(self, dry_run: bool = False) -> SweepDTO:
        """Approve every overdue PENDING purchase order.

        With ``dry_run`` nothing changes; the overdue orders are reported as
        skipped.
        """
        if dry_run:
            return SweepDTO(skipped=[o.id for o in self._scheduler.due_orders()])  # type: ignore[misc]
        result = self._scheduler.sweep()
        return SweepDTO(
            approved=list(result.approved),
            received=list(result.received),
            skipped=list(result.skipped),
            failed=dict(result.failed),
        )
