from datetime import datetime
from typing import Optional

from opentelemetry import trace

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import ForbiddenError
from src.platform.logging.loguru_io import Logger
from src.platform.types.datetime_utils import utc_now
from src.service.ticket_inventory.app.service.order_lifecycle import OrderLifecycle
from src.service.ticket_inventory.domain.entity.order_entity import Order
from src.service.ticket_inventory.domain.enum.inventory_status import OrderStatus
from src.service.ticket_inventory.domain.inventory_errors import InvalidStateTransitionError


class RefundOrderUseCase:
    def __init__(self, *, uow: AbstractUnitOfWork) -> None:
        self.uow = uow
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(
        self, *, order_id: int, user_id: int, now: Optional[datetime] = None
    ) -> Order:
        """
        completed -> refunded for the buyer's own order, provided no ticket was used.
        Refunded tickets stay out of sale (`sold` is unchanged).
        """
        with self.tracer.start_as_current_span(
            'use_case.refund_order', attributes={'order.id': order_id, 'user.id': user_id}
        ):
            async with self.uow:
                lifecycle = OrderLifecycle(self.uow)
                order = await lifecycle.get_or_raise(order_id=order_id)
                if order.user_id != user_id:
                    raise ForbiddenError('Only the buyer can refund this order')
                if not order.can_be_refunded():
                    raise InvalidStateTransitionError(
                        entity='order', current=order.status, target=OrderStatus.REFUNDED
                    )

                refunded = await lifecycle.refund_completed(order_id=order_id, now=now or utc_now())
                await self.uow.commit()

        Logger.base.info(f'💸 [ORDER] {refunded.order_number} refunded')
        return refunded
