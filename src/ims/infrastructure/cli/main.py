import logging

import click

from ims.infrastructure.cli.alert_commands import (
    alert_ack,
    alert_check,
    alert_count,
    alert_delete,
    alert_list,
    alert_resolve,
)
from ims.infrastructure.cli.catalog_commands import catalog_add_product, catalog_add_warehouse
from ims.infrastructure.cli.inventory_commands import (
    stock_damage,
    stock_low,
    stock_open,
    stock_receive,
    stock_reorder,
    stock_show,
)
from ims.infrastructure.cli.order_commands import (
    purchase_auto_approve,
    purchase_create,
    purchase_delete,
    purchase_list,
    purchase_receive,
    purchase_show,
    purchase_status,
    sales_create,
    sales_delete,
    sales_list,
    sales_show,
    sales_status,
)
from ims.infrastructure.cli.scheduler_commands import scheduler_run
from ims.infrastructure.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class ContextFormatter(logging.Formatter):
    """Appends the ``extra=`` context of a record as ``key=value`` pairs."""

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        context = " ".join(
            f"{name}={value}"
            for name, value in vars(record).items()
            if name not in _STANDARD_ATTRS
        )
        return f"{line} {context}" if context else line


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log at DEBUG level.")
def cli(verbose: bool) -> None:
    """IMS — Warehouse Inventory Management"""
    level = "DEBUG" if verbose else get_settings().log_level
    handler = logging.StreamHandler()
    handler.setFormatter(ContextFormatter(LOG_FORMAT))
    logging.basicConfig(level=level, handlers=[handler])


@cli.group()
def catalog() -> None:
    """Seed products and warehouses."""


@cli.group()
def stock() -> None:
    """Manage stock records."""


@cli.group()
def sales() -> None:
    """Manage sales orders."""


@cli.group()
def purchase() -> None:
    """Manage purchase orders."""


@cli.group()
def alert() -> None:
    """Manage low-stock alerts."""


@cli.group()
def scheduler() -> None:
    """Background jobs."""


# Register subcommands
catalog.add_command(catalog_add_product)
catalog.add_command(catalog_add_warehouse)
stock.add_command(stock_open)
stock.add_command(stock_show)
stock.add_command(stock_receive)
stock.add_command(stock_damage)
stock.add_command(stock_low)
stock.add_command(stock_reorder)
sales.add_command(sales_create)
sales.add_command(sales_status)
sales.add_command(sales_show)
sales.add_command(sales_list)
sales.add_command(sales_delete)
purchase.add_command(purchase_create)
purchase.add_command(purchase_status)
purchase.add_command(purchase_receive)
purchase.add_command(purchase_show)
purchase.add_command(purchase_list)
purchase.add_command(purchase_delete)
purchase.add_command(purchase_auto_approve)
alert.add_command(alert_list)
alert.add_command(alert_ack)
alert.add_command(alert_resolve)
alert.add_command(alert_delete)
alert.add_command(alert_count)
alert.add_command(alert_check)
scheduler.add_command(scheduler_run)
