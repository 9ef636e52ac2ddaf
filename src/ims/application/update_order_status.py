"""Application service: Update Order Status use case.

Sales and purchase orders are addressed through separate entry points, so
the handler refuses to touch an order of the other kind.
"""

from __future__ import annotations

from ims.application.dto import OrderDTO, order_to_dto
from ims.domain.exceptions import EntityNotFoundError
from ims.domain.model.order import Order, OrderKind
from ims.domain.service.order_state_machine import OrderStateMachine


def load_order_of_kind(state_machine: OrderStateMachine, order_id: int, kind: OrderKind) -> Order:
    order = state_machine.get_order(order_id)
    if order.kind is not kind:
        raise EntityNotFoundError(f"{kind.value.capitalize()} order #{order_id} not found")
    return order


class UpdateOrderStatusHandler:

    def __init__(self, state_machine: OrderStateMachine, kind: OrderKind) -> None:
        self._state_machine = state_machine
        self._kind = kind

    def handle(self, order_id: int, new_status: str) -> OrderDTO:
        load_order_of_kind(self._state_machine, order_id, self._kind)
        order = self._state_machine.transition(order_id, new_status)
        return order_to_dto(order)
