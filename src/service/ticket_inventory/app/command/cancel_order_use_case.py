from datetime import datetime
from typing import Optional

from opentelemetry import trace

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import ForbiddenError
from src.platform.logging.loguru_io import Logger
from src.platform.types.datetime_utils import utc_now
from src.service.ticket_inventory.app.service.order_lifecycle import OrderLifecycle
from src.service.ticket_inventory.domain.entity.order_entity import Order
from src.service.ticket_inventory.domain.enum.inventory_status import (
    OrderStatus,
    ReleaseReason,
)
from src.service.ticket_inventory.domain.inventory_errors import InvalidStateTransitionError


class CancelOrderUseCase:
    """
    User-initiated cancellation of a pending order; the order's holds go back on sale.

    Shares the conditional `status = pending` update with fulfillment and the
    expiry sweeper.
    """

    def __init__(self, *, uow: AbstractUnitOfWork) -> None:
        self.uow = uow
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(
        self, *, order_id: int, user_id: int, now: Optional[datetime] = None
    ) -> Order:
        with self.tracer.start_as_current_span(
            'use_case.cancel_order', attributes={'order.id': order_id, 'user.id': user_id}
        ):
            async with self.uow:
                lifecycle = OrderLifecycle(self.uow)
                order = await lifecycle.get_or_raise(order_id=order_id)
                if order.user_id != user_id:
                    raise ForbiddenError('Only the buyer can cancel this order')
                if not order.can_be_cancelled():
                    raise InvalidStateTransitionError(
                        entity='order', current=order.status, target=OrderStatus.CANCELLED
                    )

                outcome = await lifecycle.cancel_pending(
                    order_id=order_id,
                    now=now or utc_now(),
                    reason=ReleaseReason.ORDER_CANCELLED,
                )
                if outcome is None:
                    await lifecycle.raise_transition_lost(
                        order_id=order_id, target=OrderStatus.CANCELLED
                    )
                await self.uow.commit()

        cancelled = outcome.order
        Logger.base.info(f'🚫 [ORDER] {cancelled.order_number} cancelled by user {user_id}')
        return cancelled
