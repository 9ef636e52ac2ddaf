"""Application service: Create Sales Order use case.

Builds the order lines from the request and hands them to the Order State
Machine, which reserves stock for every line or fails without side effects.
"""

from __future__ import annotations

from ims.application.dto import OrderDTO, OrderItemSpec, order_to_dto
from ims.domain.model.order import CustomerInfo, OrderItem
from ims.domain.model.value_objects import Money, Quantity
from ims.domain.service.order_state_machine import OrderStateMachine


def build_items(specs: list[OrderItemSpec]) -> list[OrderItem]:
    """Validate raw item specs and turn them into order lines."""
    return [
        OrderItem(
            product_id=spec.product_id.strip(),
            quantity_requested=Quantity(spec.quantity),
            unit_price=Money.of(spec.unit_price),
            notes=spec.notes or "",
        )
        for spec in specs
    ]


class CreateSalesOrderHandler:

    def __init__(self, state_machine: OrderStateMachine) -> None:
        self._state_machine = state_machine

    def handle(
        self,
        warehouse_id: str,
        customer_name: str,
        items: list[OrderItemSpec],
        customer_email: str = "",
        shipping_address: str = "",
        billing_address: str = "",
        notes: str = "",
    ) -> OrderDTO:
        customer = CustomerInfo(
            name=(customer_name or "").strip(),
            email=customer_email or "",
            shipping_address=shipping_address or "",
            billing_address=billing_address or "",
        )
        order = self._state_machine.create_sales_order(
            warehouse_id=warehouse_id,
            customer=customer,
            items=build_items(items),
            notes=notes,
        )
        return order_to_dto(order)
