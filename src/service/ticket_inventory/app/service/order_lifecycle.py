"""
Order status transitions that carry inventory side effects.

Cancellation (user, payment failure, expiry sweep) and completion all gate on
the same conditional `status = pending` update, so whichever commits first wins
and the others see a no-op.
"""

from datetime import datetime
from typing import NoReturn, Optional

import attrs

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import DomainError, NotFoundError
from src.service.ticket_inventory.app.service.inventory_ledger import InventoryLedger
from src.service.ticket_inventory.domain.entity.order_entity import Order
from src.service.ticket_inventory.domain.enum.inventory_status import (
    OrderStatus,
    ReleaseReason,
    TicketStatus,
)
from src.service.ticket_inventory.domain.inventory_errors import InvalidStateTransitionError


@attrs.frozen
class CancellationOutcome:
    order: Order
    released_units: int


class OrderLifecycle:
    def __init__(self, uow: AbstractUnitOfWork) -> None:
        self.uow = uow
        self.ledger = InventoryLedger(uow)

    async def get_or_raise(self, *, order_id: int) -> Order:
        order = await self.uow.order_repo.get_by_id(order_id=order_id)
        if order is None:
            raise NotFoundError(f'Order {order_id} not found')
        return order

    async def raise_transition_lost(self, *, order_id: int, target: str) -> NoReturn:
        """The conditional update matched nothing: report what the row holds now"""
        order = await self.get_or_raise(order_id=order_id)
        raise InvalidStateTransitionError(entity='order', current=order.status, target=target)

    async def cancel_pending(
        self, *, order_id: int, now: datetime, reason: ReleaseReason
    ) -> Optional[CancellationOutcome]:
        """
        pending -> cancelled, then release the order's holds.

        Returns:
            The cancelled order and units returned to sale, or None when the order
            was not pending any more
        """
        cancelled = await self.uow.order_repo.transition_status(
            order_id=order_id,
            expected=OrderStatus.PENDING,
            target=OrderStatus.CANCELLED,
            now=now,
        )
        if cancelled is None:
            return None
        released_units = await self.ledger.release_for_order(
            order_id=order_id, now=now, reason=reason
        )
        return CancellationOutcome(order=cancelled, released_units=released_units)

    async def refund_completed(self, *, order_id: int, now: datetime) -> Order:
        """
        completed -> refunded; active tickets become refunded.

        Refunded units are not returned to sale.

        Raises:
            DomainError: A ticket of the order was already used
            InvalidStateTransitionError: Order not completed
        """
        used = await self.uow.ticket_repo.count_by_order(
            order_id=order_id, status=TicketStatus.USED
        )
        if used:
            raise DomainError(f'Cannot refund order {order_id}: {used} ticket(s) already used')

        refunded = await self.uow.order_repo.transition_status(
            order_id=order_id,
            expected=OrderStatus.COMPLETED,
            target=OrderStatus.REFUNDED,
            now=now,
        )
        if refunded is None:
            await self.raise_transition_lost(order_id=order_id, target=OrderStatus.REFUNDED)
        await self.uow.ticket_repo.refund_active_by_order(order_id=order_id)
        return refunded
