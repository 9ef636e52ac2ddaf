"""Application service: Create Purchase Order use case."""

from __future__ import annotations

from ims.application.create_sales_order import build_items
from ims.application.dto import OrderDTO, OrderItemSpec, order_to_dto
from ims.domain.model.order import SupplierInfo
from ims.domain.service.order_state_machine import OrderStateMachine


class CreatePurchaseOrderHandler:

    def __init__(self, state_machine: OrderStateMachine) -> None:
        self._state_machine = state_machine

    def handle(
        self,
        warehouse_id: str,
        supplier_name: str,
        items: list[OrderItemSpec],
        contact_info: str = "",
        notes: str = "",
    ) -> OrderDTO:
        """Create a PENDING purchase order; stock is untouched until receipt."""
        supplier = SupplierInfo(name=(supplier_name or "").strip(), contact_info=contact_info or "")
        order = self._state_machine.create_purchase_order(
            warehouse_id=warehouse_id,
            supplier=supplier,
            items=build_items(items),
            notes=notes,
        )
        return order_to_dto(order)
