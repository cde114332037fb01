from datetime import datetime
from typing import Optional

from opentelemetry import trace

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import DomainError
from src.platform.logging.loguru_io import Logger
from src.platform.types.datetime_utils import utc_now
from src.service.ticket_inventory.app.service.order_lifecycle import OrderLifecycle
from src.service.ticket_inventory.domain.entity.order_entity import Order
from src.service.ticket_inventory.domain.enum.inventory_status import (
    OrderStatus,
    ReleaseReason,
)


class UpdateOrderStatusUseCase:
    """
    Generic order status change, validated against the order status graph:

        pending   -> completed | cancelled
        completed -> refunded

    Completion carries ticket minting and is only reachable through
    CompleteOrderUseCase; asking for it here is rejected.
    """

    def __init__(self, *, uow: AbstractUnitOfWork) -> None:
        self.uow = uow
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(
        self, *, order_id: int, new_status: OrderStatus, now: Optional[datetime] = None
    ) -> Order:
        """
        Raises:
            NotFoundError: Unknown order
            InvalidStateTransitionError: Edge not in the status graph, or lost a race
            DomainError: Completion requested outside the fulfillment path
        """
        with self.tracer.start_as_current_span(
            'use_case.update_order_status',
            attributes={'order.id': order_id, 'order.target_status': new_status.value},
        ):
            async with self.uow:
                lifecycle = OrderLifecycle(self.uow)
                order = await lifecycle.get_or_raise(order_id=order_id)
                order.ensure_can_transition_to(new_status)
                now = now or utc_now()

                if new_status == OrderStatus.COMPLETED:
                    raise DomainError(
                        'Orders are completed by the fulfillment transaction, not a status update'
                    )

                if new_status == OrderStatus.CANCELLED:
                    outcome = await lifecycle.cancel_pending(
                        order_id=order_id, now=now, reason=ReleaseReason.ORDER_CANCELLED
                    )
                    if outcome is None:
                        await lifecycle.raise_transition_lost(order_id=order_id, target=new_status)
                    updated = outcome.order
                else:
                    updated = await lifecycle.refund_completed(order_id=order_id, now=now)

                await self.uow.commit()

        Logger.base.info(f'🔁 [ORDER] {order_id} {order.status} -> {new_status}')
        return updated
