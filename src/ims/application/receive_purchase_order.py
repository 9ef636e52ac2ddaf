"""Application service: Receive Purchase Order use case.

Without explicit quantities every outstanding unit is received and the
order moves to RECEIVED. With quantities, only those units are booked in;
the order stays APPROVED until everything has arrived.
"""

from __future__ import annotations

from ims.application.dto import OrderDTO, order_to_dto
from ims.application.update_order_status import load_order_of_kind
from ims.domain.model.order import OrderKind, PurchaseOrderStatus
from ims.domain.service.order_state_machine import OrderStateMachine


class ReceivePurchaseOrderHandler:

    def __init__(self, state_machine: OrderStateMachine) -> None:
        self._state_machine = state_machine

    def handle(self, order_id: int, quantities: dict[str, int] | None = None) -> OrderDTO:
        load_order_of_kind(self._state_machine, order_id, OrderKind.PURCHASE)
        if quantities is None:
            order = self._state_machine.transition(order_id, PurchaseOrderStatus.RECEIVED)
        else:
            order = self._state_machine.receive_items(order_id, quantities)
        return order_to_dto(order)
