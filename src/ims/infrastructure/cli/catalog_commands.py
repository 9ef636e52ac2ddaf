"""CLI commands for seeding catalog references."""

from __future__ import annotations

import click

from ims.application.register_catalog import AddProductHandler, AddWarehouseHandler
from ims.domain.exceptions import DomainException
from ims.infrastructure.cli.common import engine


@click.command("add-product")
@click.option("--id", "product_id", required=True, help="Product ID.")
@click.option("--name", required=True, help="Product name.")
@click.option("--threshold", type=int, default=None, help="Minimum stock threshold.")
def catalog_add_product(product_id: str, name: str, threshold: int | None) -> None:
    """Register a product."""
    eng = engine()
    handler = AddProductHandler(eng.products, eng.settings.default_minimum_stock_threshold)
    try:
        product = handler.handle(product_id, name, threshold)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(
        f"Product '{product.id}' ({product.name}) added, "
        f"minimum stock {product.minimum_stock_threshold}"
    )


@click.command("add-warehouse")
@click.option("--id", "warehouse_id", required=True, help="Warehouse ID.")
@click.option("--name", required=True, help="Warehouse name.")
@click.option("--location", default="", help="Address or site description.")
def catalog_add_warehouse(warehouse_id: str, name: str, location: str) -> None:
    """Register a warehouse."""
    handler = AddWarehouseHandler(engine().warehouses)
    try:
        warehouse = handler.handle(warehouse_id, name, location)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Warehouse '{warehouse.id}' ({warehouse.name}) added")
