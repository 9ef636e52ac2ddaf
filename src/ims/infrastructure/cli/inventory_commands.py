"""CLI commands for stock records."""

from __future__ import annotations

import click

from ims.application.manage_stock import (
    LowStockHandler,
    MarkDamagedHandler,
    OpenStockHandler,
    ReceiveStockHandler,
    ReorderRecommendationsHandler,
    ShowInventoryHandler,
    TotalAvailableHandler,
)
from ims.domain.exceptions import DomainException
from ims.infrastructure.cli.common import display_stock, engine


@click.command("open")
@click.option("--product", required=True, help="Product ID.")
@click.option("--warehouse", required=True, help="Warehouse ID.")
@click.option("--quantity", type=int, default=0, show_default=True, help="Initial available stock.")
def stock_open(product: str, warehouse: str, quantity: int) -> None:
    """Start tracking a product in a warehouse."""
    try:
        dto = OpenStockHandler(engine().ledger).handle(product, warehouse, quantity)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Stock opened for '{dto.product_id}' in '{dto.warehouse_id}': {dto.available} available")


@click.command("show")
@click.option("--product", default=None, help="Only this product.")
@click.option("--warehouse", default=None, help="Only this warehouse.")
def stock_show(product: str | None, warehouse: str | None) -> None:
    """Show current stock levels."""
    ledger = engine().ledger
    display_stock(ShowInventoryHandler(ledger).handle(product, warehouse))
    if product and not warehouse:
        try:
            total = TotalAvailableHandler(ledger).handle(product)
        except DomainException as exc:
            raise click.ClickException(str(exc))
        click.echo(f"Total available for '{product}' across warehouses: {total}")


@click.command("receive")
@click.option("--product", required=True, help="Product ID.")
@click.option("--warehouse", required=True, help="Warehouse ID.")
@click.option("--quantity", type=int, required=True, help="Units received.")
def stock_receive(product: str, warehouse: str, quantity: int) -> None:
    """Add units to available stock outside of a purchase order."""
    try:
        dto = ReceiveStockHandler(engine().ledger).handle(product, warehouse, quantity)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Received {quantity}; '{dto.product_id}' now has {dto.available} available")


@click.command("damage")
@click.option("--product", required=True, help="Product ID.")
@click.option("--warehouse", required=True, help="Warehouse ID.")
@click.option("--quantity", type=int, required=True, help="Units found damaged.")
def stock_damage(product: str, warehouse: str, quantity: int) -> None:
    """Move units from available to damaged."""
    try:
        dto = MarkDamagedHandler(engine().ledger).handle(product, warehouse, quantity)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Marked {quantity} damaged; '{dto.product_id}' now has {dto.available} available")


@click.command("low")
@click.option("--warehouse", default=None, help="Only this warehouse.")
def stock_low(warehouse: str | None) -> None:
    """List stock records at or below their product's threshold."""
    try:
        levels = LowStockHandler(engine().alerts).handle(warehouse)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    if not levels:
        click.echo("No low-stock records.")
        return
    click.echo(f"{'Product':<16} {'Warehouse':<12} {'Available':>10} {'Threshold':>10}")
    click.echo("-" * 51)
    for level in levels:
        click.echo(
            f"{level.product_id:<16} {level.warehouse_id:<12} {level.available:>10} {level.threshold:>10}"
        )


@click.command("reorder")
@click.option("--warehouse", default=None, help="Only this warehouse.")
def stock_reorder(warehouse: str | None) -> None:
    """Suggest purchase quantities for every low-stock record."""
    try:
        recommendations = ReorderRecommendationsHandler(engine().alerts).handle(warehouse)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    if not recommendations:
        click.echo("Nothing to reorder.")
        return
    click.echo(f"{'Product':<16} {'Warehouse':<12} {'Available':>10} {'Optimal':>8} {'Reorder':>8}")
    click.echo("-" * 58)
    for rec in recommendations:
        click.echo(
            f"{rec.product_id:<16} {rec.warehouse_id:<12} {rec.available:>10} "
            f"{rec.optimal_stock_level:>8} {rec.suggested_reorder_quantity:>8}"
        )
