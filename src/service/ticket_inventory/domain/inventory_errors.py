"""
Inventory error taxonomy

The callers act on the class, not the message:
- ValidationError: bad input, rejected before any I/O
- InsufficientStockError / SaleWindowClosedError: business outcomes, never auto-retried
- InvalidStateTransitionError / DoubleFulfillmentError / ReservationStateError:
  conflicts, the caller re-fetches current state instead of retrying
- InventoryVersionConflictError: lost compare-and-swap, safe to retry the whole operation
"""

from typing import Optional

from src.platform.exception.exceptions import ConflictError, DomainError, TransientStoreError


class ValidationError(DomainError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 400)


class InsufficientStockError(DomainError):
    def __init__(self, *, ticket_type_id: int, requested: int, available: int) -> None:
        self.ticket_type_id = ticket_type_id
        self.requested = requested
        self.available = available
        super().__init__(
            f'Insufficient stock for ticket type {ticket_type_id}: '
            f'requested {requested}, available {available}',
            409,
        )


class SaleWindowClosedError(DomainError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 409)


class SaleNotStartedError(SaleWindowClosedError):
    def __init__(self, *, ticket_type_id: int) -> None:
        super().__init__(f'Sale has not started for ticket type {ticket_type_id}')


class SaleEndedError(SaleWindowClosedError):
    def __init__(self, *, ticket_type_id: int) -> None:
        super().__init__(f'Sale has ended for ticket type {ticket_type_id}')


class InvalidStateTransitionError(ConflictError):
    def __init__(self, *, entity: str, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f'Cannot transition {entity} from {current} to {target}')


class DoubleFulfillmentError(ConflictError):
    """Completion attempted with a payment reference other than the recorded one"""

    def __init__(
        self, *, order_id: int, recorded_reference: Optional[str], attempted_reference: str
    ) -> None:
        self.order_id = order_id
        self.recorded_reference = recorded_reference
        self.attempted_reference = attempted_reference
        super().__init__(
            f'Order {order_id} already fulfilled with a different payment reference; '
            'manual reconciliation required'
        )


class ReservationStateError(ConflictError):
    pass


class InventoryVersionConflictError(TransientStoreError):
    def __init__(self, *, ticket_type_id: int, expected_version: int) -> None:
        self.ticket_type_id = ticket_type_id
        self.expected_version = expected_version
        super().__init__(
            f'Ticket type {ticket_type_id} changed concurrently (expected version {expected_version})'
        )
