"""CLI command for the long-running auto-approval and stock re-check loop."""

from __future__ import annotations

import click

from ims.infrastructure.cli.common import engine


@click.command("run")
def scheduler_run() -> None:
    """Sweep for overdue purchase orders and re-check stock until interrupted (Ctrl+C)."""
    eng = engine()
    click.echo(
        f"Auto-approving purchase orders after {eng.settings.auto_approval_delay_seconds:g}s, "
        f"sweeping every {eng.settings.sweep_interval_seconds:g}s, re-checking stock every "
        f"{eng.settings.low_stock_check_interval_seconds:g}s. Press Ctrl+C to stop."
    )
    try:
        eng.scheduler.run_forever()
    except KeyboardInterrupt:
        eng.scheduler.stop()
    click.echo("Scheduler stopped.")
