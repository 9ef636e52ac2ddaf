"""CLI commands for sales and purchase orders."""

from __future__ import annotations

import click

from ims.application.create_purchase_order import CreatePurchaseOrderHandler
from ims.application.create_sales_order import CreateSalesOrderHandler
from ims.application.receive_purchase_order import ReceivePurchaseOrderHandler
from ims.application.run_auto_approval import RunAutoApprovalHandler
from ims.application.show_order import DeleteOrderHandler, ListOrdersHandler, ShowOrderHandler
from ims.application.update_order_status import UpdateOrderStatusHandler
from ims.domain.exceptions import DomainException
from ims.domain.model.order import OrderKind
from ims.infrastructure.cli.common import (
    display_order,
    display_order_rows,
    engine,
    parse_items,
    parse_quantities,
)

# --- Sales orders ---------------------------------------------------------------


@click.command("create")
@click.option("--warehouse", required=True, help="Warehouse ID to ship from.")
@click.option("--customer", required=True, help="Customer name.")
@click.option("--email", default="", help="Customer email.")
@click.option("--shipping-address", default="", help="Shipping address.")
@click.option("--billing-address", default="", help="Billing address.")
@click.option("--notes", default="", help="Free-form notes.")
@click.option("--items", required=True, help="Items as 'ProductId:Qty@Price,...'.")
def sales_create(
    warehouse: str,
    customer: str,
    email: str,
    shipping_address: str,
    billing_address: str,
    notes: str,
    items: str,
) -> None:
    """Create a sales order (reserves stock)."""
    specs = parse_items(items)
    handler = CreateSalesOrderHandler(engine().orders)
    try:
        dto = handler.handle(
            warehouse_id=warehouse,
            customer_name=customer,
            items=specs,
            customer_email=email,
            shipping_address=shipping_address,
            billing_address=billing_address,
            notes=notes,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))
    display_order(dto)


@click.command("status")
@click.option("--id", "order_id", required=True, type=int, help="Order ID.")
@click.option("--to", "new_status", required=True, help="CONFIRMED, SHIPPED, DELIVERED or CANCELLED.")
def sales_status(order_id: int, new_status: str) -> None:
    """Move a sales order to a new status."""
    handler = UpdateOrderStatusHandler(engine().orders, OrderKind.SALES)
    try:
        dto = handler.handle(order_id, new_status)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Sales order #{dto.id} is now {dto.status}.")


@click.command("show")
@click.option("--id", "order_id", required=True, type=int, help="Order ID.")
def sales_show(order_id: int) -> None:
    """Show a sales order."""
    try:
        dto = ShowOrderHandler(engine().orders, OrderKind.SALES).handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    display_order(dto)


@click.command("list")
@click.option("--status", default=None, help="Only orders in this status.")
@click.option("--warehouse", default=None, help="Only orders for this warehouse.")
@click.option("--email", default=None, help="Only orders for this customer email.")
def sales_list(status: str | None, warehouse: str | None, email: str | None) -> None:
    """List sales orders."""
    try:
        dtos = ListOrdersHandler(engine().orders, OrderKind.SALES).handle(status, warehouse, email)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    display_order_rows(dtos)


@click.command("delete")
@click.option("--id", "order_id", required=True, type=int, help="Order ID.")
def sales_delete(order_id: int) -> None:
    """Delete a cancelled or delivered sales order."""
    try:
        DeleteOrderHandler(engine().orders, OrderKind.SALES).handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Sales order #{order_id} deleted.")


# --- Purchase orders ------------------------------------------------------------


@click.command("create")
@click.option("--warehouse", required=True, help="Warehouse ID to deliver to.")
@click.option("--supplier", required=True, help="Supplier name.")
@click.option("--contact", default="", help="Supplier contact info.")
@click.option("--notes", default="", help="Free-form notes.")
@click.option("--items", required=True, help="Items as 'ProductId:Qty@Price,...'.")
def purchase_create(warehouse: str, supplier: str, contact: str, notes: str, items: str) -> None:
    """Create a purchase order (approved automatically after the configured delay)."""
    specs = parse_items(items)
    handler = CreatePurchaseOrderHandler(engine().orders)
    try:
        dto = handler.handle(
            warehouse_id=warehouse,
            supplier_name=supplier,
            items=specs,
            contact_info=contact,
            notes=notes,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))
    display_order(dto)


@click.command("status")
@click.option("--id", "order_id", required=True, type=int, help="Order ID.")
@click.option("--to", "new_status", required=True, help="APPROVED or RECEIVED.")
def purchase_status(order_id: int, new_status: str) -> None:
    """Move a purchase order to a new status."""
    handler = UpdateOrderStatusHandler(engine().orders, OrderKind.PURCHASE)
    try:
        dto = handler.handle(order_id, new_status)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Purchase order #{dto.id} is now {dto.status}.")


@click.command("receive")
@click.option("--id", "order_id", required=True, type=int, help="Order ID.")
@click.option("--items", "items_str", default=None, help="Partial receipt as 'ProductId:Qty,...'.")
def purchase_receive(order_id: int, items_str: str | None) -> None:
    """Receive an approved purchase order, fully or partially."""
    quantities = parse_quantities(items_str) if items_str else None
    handler = ReceivePurchaseOrderHandler(engine().orders)
    try:
        dto = handler.handle(order_id, quantities)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Purchase order #{dto.id} received (status={dto.status}).")


@click.command("show")
@click.option("--id", "order_id", required=True, type=int, help="Order ID.")
def purchase_show(order_id: int) -> None:
    """Show a purchase order."""
    try:
        dto = ShowOrderHandler(engine().orders, OrderKind.PURCHASE).handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    display_order(dto)


@click.command("list")
@click.option("--status", default=None, help="Only orders in this status.")
@click.option("--warehouse", default=None, help="Only orders for this warehouse.")
def purchase_list(status: str | None, warehouse: str | None) -> None:
    """List purchase orders."""
    try:
        dtos = ListOrdersHandler(engine().orders, OrderKind.PURCHASE).handle(status, warehouse)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    display_order_rows(dtos)


@click.command("delete")
@click.option("--id", "order_id", required=True, type=int, help="Order ID.")
def purchase_delete(order_id: int) -> None:
    """Delete a PENDING purchase order."""
    try:
        DeleteOrderHandler(engine().orders, OrderKind.PURCHASE).handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Purchase order #{order_id} deleted.")


@click.command("auto-approve")
@click.option("--dry-run", is_flag=True, default=False, help="Only list overdue orders.")
def purchase_auto_approve(dry_run: bool) -> None:
    """Run one auto-approval pass over overdue PENDING purchase orders."""
    result = RunAutoApprovalHandler(engine().scheduler).handle(dry_run=dry_run)
    if dry_run:
        click.echo(f"{len(result.skipped)} purchase order(s) would be approved")
        return
    click.echo(f"{len(result.approved)} purchase order(s) approved")
    for order_id, reason in result.failed.items():
        click.echo(f"  #{order_id} skipped: {reason}", err=True)
