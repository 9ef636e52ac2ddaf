"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.
"""

from __future__ import annotations


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A request was malformed or a business invariant was violated."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class InsufficientStockError(DomainException):
    """A reservation (or damage write-off) exceeds the available stock."""

    def __init__(
        self,
        product_id: str,
        warehouse_id: str,
        available: int,
        requested: int,
    ) -> None:
        self.product_id = product_id
        self.warehouse_id = warehouse_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for product '{product_id}' in warehouse "
            f"'{warehouse_id}': requested {requested}, only {available} units available"
        )


class InvalidTransitionError(DomainException):
    """A status change is not permitted from the current state."""

    def __init__(self, entity: str, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot move {entity} from {current} to {requested}"
        )


class InvalidReservationStateError(DomainException):
    """A commit or release exceeds the outstanding reservation.

    Surfacing this to a caller indicates a bookkeeping bug.
    """


class ConcurrentModificationError(DomainException):
    """An order was modified by someone else while being transitioned."""
