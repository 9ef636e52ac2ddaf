"""CLI commands for low-stock alerts."""

from __future__ import annotations

import click

from ims.application.manage_alerts import (
    AcknowledgeAlertHandler,
    CountActiveAlertsHandler,
    DeleteAlertHandler,
    ListAlertsHandler,
    ResolveAlertHandler,
    TriggerAlertCheckHandler,
)
from ims.domain.exceptions import DomainException
from ims.infrastructure.cli.common import engine


@click.command("list")
@click.option("--status", default=None, help="ACTIVE, ACKNOWLEDGED or RESOLVED.")
@click.option("--product", default=None, help="Only this product.")
@click.option("--warehouse", default=None, help="Only this warehouse.")
def alert_list(status: str | None, product: str | None, warehouse: str | None) -> None:
    """List alerts."""
    try:
        dtos = ListAlertsHandler(engine().alerts).handle(status, product, warehouse)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not dtos:
        click.echo("No alerts found.")
        return
    click.echo(
        f"{'ID':>4} {'Type':<13} {'Status':<13} {'Product':<14} {'Warehouse':<10} "
        f"{'Stock':>6} {'Min':>5} {'Reorder':>8}"
    )
    click.echo("-" * 80)
    for a in dtos:
        click.echo(
            f"{a.id:>4} {a.alert_type:<13} {a.status:<13} {a.product_id:<14} {a.warehouse_id:<10} "
            f"{a.current_stock_at_creation:>6} {a.threshold:>5} {a.suggested_reorder_quantity:>8}"
        )


@click.command("ack")
@click.option("--id", "alert_id", required=True, type=int, help="Alert ID.")
def alert_ack(alert_id: int) -> None:
    """Acknowledge an active alert."""
    try:
        AcknowledgeAlertHandler(engine().alerts).handle(alert_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Alert #{alert_id} acknowledged.")


@click.command("resolve")
@click.option("--id", "alert_id", required=True, type=int, help="Alert ID.")
@click.option("--note", default=None, help="Resolution note.")
def alert_resolve(alert_id: int, note: str | None) -> None:
    """Resolve an alert."""
    try:
        ResolveAlertHandler(engine().alerts).handle(alert_id, note)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Alert #{alert_id} resolved.")


@click.command("delete")
@click.option("--id", "alert_id", required=True, type=int, help="Alert ID.")
def alert_delete(alert_id: int) -> None:
    """Delete an acknowledged or resolved alert."""
    try:
        DeleteAlertHandler(engine().alerts).handle(alert_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Alert #{alert_id} deleted.")


@click.command("count")
def alert_count() -> None:
    """Print the number of active alerts."""
    click.echo(CountActiveAlertsHandler(engine().alerts).handle())


@click.command("check")
def alert_check() -> None:
    """Re-evaluate every stock record now (diagnostics)."""
    try:
        report = TriggerAlertCheckHandler(engine().alerts).handle()
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Stock records:     {report['stock_records']}")
    click.echo(f"At/below minimum:  {report['low_stock_records']}")
    click.echo(f"Alerts created:    {report['alerts_created']}")
    click.echo(f"Active alerts:     {report['active_alerts']}")
