"""Helpers shared by the CLI command modules."""

from __future__ import annotations

import click

from ims.application.dto import OrderDTO, OrderItemSpec, StockDTO
from ims.infrastructure.bootstrap import Engine, build_engine


def engine() -> Engine:
    """The engine for this invocation, built on first use."""
    ctx = click.get_current_context()
    root = ctx.find_root()
    if not isinstance(root.obj, Engine):
        root.obj = build_engine()
    return root.obj


def _split_pairs(raw: str, expected: str) -> list[tuple[str, int, str]]:
    """Split 'P1:3@9.99,P2:5' into (product_id, quantity, price) triples."""
    parsed: list[tuple[str, int, str]] = []
    for pair in raw.split(","):
        pair = pair.strip()
        if ":" not in pair:
            raise click.BadParameter(f"Invalid item format '{pair}'. Expected '{expected}'.")
        product_id, rest = pair.split(":", 1)
        qty_str, _, price = rest.partition("@")
        try:
            qty = int(qty_str)
        except ValueError:
            raise click.BadParameter(
                f"Invalid quantity '{qty_str}' for product '{product_id}'."
            )
        parsed.append((product_id.strip(), qty, price.strip()))
    return parsed


def parse_items(raw: str) -> list[OrderItemSpec]:
    """Parse 'P1:3@9.99,P2:5@1.50' into OrderItemSpec list; every line needs a price."""
    specs: list[OrderItemSpec] = []
    for product_id, qty, price in _split_pairs(raw, "ProductId:Quantity@UnitPrice"):
        if not price:
            raise click.BadParameter(
                f"Missing unit price for product '{product_id}'. Expected 'ProductId:Quantity@UnitPrice'."
            )
        specs.append(OrderItemSpec(product_id=product_id, quantity=qty, unit_price=price))
    return specs


def parse_quantities(raw: str) -> dict[str, int]:
    """Parse 'P1:20,P2:10' into {product_id: qty}."""
    return {
        product_id: qty for product_id, qty, _ in _split_pairs(raw, "ProductId:Quantity")
    }


def display_order(dto: OrderDTO) -> None:
    click.echo(f"{dto.kind.capitalize()} order #{dto.id}  (status={dto.status})")
    click.echo(f"Warehouse: {dto.warehouse_id}")
    for field_name, value in dto.counterparty.items():
        if value:
            click.echo(f"{field_name.replace('_', ' ').capitalize()}: {value}")
    click.echo(f"Created:  {dto.created_at}")
    click.echo(f"Updated:  {dto.updated_at}")
    if dto.notes:
        click.echo(f"Notes:    {dto.notes}")
    click.echo()
    click.echo(f"  {'Product':<20} {'Qty':>5} {'Done':>6} {'Price':>10} {'Total':>10}")
    click.echo(f"  {'-'*55}")
    for item in dto.items:
        click.echo(
            f"  {item.product_id:<20} {item.quantity_requested:>5} "
            f"{item.quantity_fulfilled:>6} {item.unit_price:>10} {item.line_total:>10}"
        )
    click.echo(f"  {'-'*55}")
    click.echo(f"  {'Order Total':<27} {dto.total:>28}")


def display_order_rows(dtos: list[OrderDTO]) -> None:
    if not dtos:
        click.echo("No orders found.")
        return
    click.echo(f"{'ID':>5} {'Status':<10} {'Warehouse':<12} {'Counterparty':<20} {'Total':>10}")
    click.echo("-" * 61)
    for dto in dtos:
        name = next(iter(dto.counterparty.values()), "")
        click.echo(f"{dto.id:>5} {dto.status:<10} {dto.warehouse_id:<12} {name:<20} {dto.total:>10}")


def display_stock(dtos: list[StockDTO]) -> None:
    if not dtos:
        click.echo("No stock records found.")
        return
    click.echo(f"{'Product':<16} {'Warehouse':<12} {'Available':>10} {'Reserved':>10} {'Damaged':>8}")
    click.echo("-" * 60)
    for s in dtos:
        click.echo(
            f"{s.product_id:<16} {s.warehouse_id:<12} {s.available:>10} {s.reserved:>10} {s.damaged:>8}"
        )
