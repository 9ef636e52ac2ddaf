"""JSON-file-backed implementation of OrderRepository."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path

from ims.domain.exceptions import ConcurrentModificationError
from ims.domain.model.order import (
    STATUS_TYPES,
    CustomerInfo,
    Order,
    OrderItem,
    OrderKind,
    SupplierInfo,
)
from ims.domain.model.value_objects import Money, Quantity
from ims.domain.repository.order_repository import OrderRepository
from ims.infrastructure.persistence.json_store import JsonFileStore


class JsonOrderRepository(OrderRepository):

    def __init__(self, file_path: Path, lock_timeout: float = 30.0) -> None:
        self._store = JsonFileStore(file_path, lock_timeout)

    # --- OrderRepository interface --------------------------------------------

    def get_by_id(self, order_id: int) -> Order | None:
        for raw in self._store.load():
            if raw["id"] == order_id:
                return self._to_domain(raw)
        return None

    def list_all(self) -> list[Order]:
        return [self._to_domain(raw) for raw in self._store.load()]

    def save(self, order: Order) -> None:
        with self._store.lock:
            orders = self._store.load()

            if order.id is None:
                order.id = self._store.next_id()
                stored_version = order.version
            else:
                stored_version = next(
                    (raw.get("version", 0) for raw in orders if raw["id"] == order.id), None
                )
                if stored_version is None:
                    raise ConcurrentModificationError(
                        f"Order #{order.id} was deleted concurrently"
                    )
            if stored_version != order.version:
                raise ConcurrentModificationError(
                    f"Order #{order.id} was modified concurrently "
                    f"(version {order.version}, stored {stored_version})"
                )

            order.version += 1
            raw_order = self._to_raw(order)
            for i, raw in enumerate(orders):
                if raw["id"] == order.id:
                    orders[i] = raw_order
                    break
            else:
                orders.append(raw_order)
            self._store.persist(orders)

    def delete(self, order_id: int) -> None:
        with self._store.lock:
            orders = [raw for raw in self._store.load() if raw["id"] != order_id]
            self._store.persist(orders)

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(order: Order) -> dict:
        party = order.counterparty
        if isinstance(party, SupplierInfo):
            counterparty = {"supplier_name": party.name, "contact_info": party.contact_info}
        else:
            counterparty = {
                "customer_name": party.name,
                "customer_email": party.email,
                "shipping_address": party.shipping_address,
                "billing_address": party.billing_address,
            }
        return {
            "id": order.id,
            "kind": order.kind.value,
            "warehouse_id": order.warehouse_id,
            "status": order.status.value,
            "counterparty": counterparty,
            "notes": order.notes,
            "created_at": order.created_at.isoformat(),
            "updated_at": order.updated_at.isoformat(),
            "version": order.version,
            "items": [
                {
                    "product_id": item.product_id,
                    "quantity_requested": item.quantity_requested.value,
                    "quantity_fulfilled": item.quantity_fulfilled,
                    "unit_price": str(item.unit_price.amount),
                    "notes": item.notes,
                }
                for item in order.items
            ],
        }

    @staticmethod
    def _to_domain(raw: dict) -> Order:
        kind = OrderKind(raw["kind"])
        party = raw["counterparty"]
        if kind is OrderKind.PURCHASE:
            counterparty = SupplierInfo(party["supplier_name"], party.get("contact_info", ""))
        else:
            counterparty = CustomerInfo(
                party["customer_name"],
                party.get("customer_email", ""),
                party.get("shipping_address", ""),
                party.get("billing_address", ""),
            )
        items = [
            OrderItem(
                product_id=i["product_id"],
                quantity_requested=Quantity(i["quantity_requested"]),
                unit_price=Money(Decimal(i["unit_price"])),
                quantity_fulfilled=i.get("quantity_fulfilled", 0),
                notes=i.get("notes", ""),
            )
            for i in raw["items"]
        ]
        return Order(
            id=raw["id"],
            kind=kind,
            warehouse_id=raw["warehouse_id"],
            counterparty=counterparty,
            items=items,
            status=STATUS_TYPES[kind](raw["status"]),  # type: ignore[arg-type]
            notes=raw.get("notes", ""),
            created_at=datetime.fromisoformat(raw["created_at"]),
            updated_at=datetime.fromisoformat(raw["updated_at"]),
            version=raw.get("version", 0),
        )
