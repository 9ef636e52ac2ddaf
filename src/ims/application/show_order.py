"""Application services: order queries and deletion."""

from __future__ import annotations

from ims.application.dto import OrderDTO, order_to_dto
from ims.application.update_order_status import load_order_of_kind
from ims.domain.model.order import OrderKind, parse_status
from ims.domain.service.order_state_machine import OrderStateMachine


class ShowOrderHandler:

    def __init__(self, state_machine: OrderStateMachine, kind: OrderKind) -> None:
        self._state_machine = state_machine
        self._kind = kind

    def handle(self, order_id: int) -> OrderDTO:
        return order_to_dto(load_order_of_kind(self._state_machine, order_id, self._kind))


class ListOrdersHandler:

    def __init__(self, state_machine: OrderStateMachine, kind: OrderKind) -> None:
        self._state_machine = state_machine
        self._kind = kind

    def handle(
        self,
        status: str | None = None,
        warehouse_id: str | None = None,
        customer_email: str | None = None,
    ) -> list[OrderDTO]:
        wanted = parse_status(self._kind, status) if status else None
        orders = self._state_machine.list_orders(
            kind=self._kind,
            status=wanted,
            warehouse_id=warehouse_id,
            customer_email=customer_email,
        )
        return [order_to_dto(o) for o in orders]


class DeleteOrderHandler:

    def __init__(self, state_machine: OrderStateMachine, kind: OrderKind) -> None:
        self._state_machine = state_machine
        self._kind = kind

    def handle(self, order_id: int) -> None:
        load_order_of_kind(self._state_machine, order_id, self._kind)
        self._state_machine.delete_order(order_id)
