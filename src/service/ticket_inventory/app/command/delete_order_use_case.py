from datetime import datetime
from typing import Optional

from opentelemetry import trace

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import ConflictError, ForbiddenError
from src.platform.logging.loguru_io import Logger
from src.platform.types.datetime_utils import utc_now
from src.service.ticket_inventory.app.service.order_lifecycle import OrderLifecycle
from src.service.ticket_inventory.domain.enum.inventory_status import (
    OrderStatus,
    ReleaseReason,
)
from src.service.ticket_inventory.domain.inventory_errors import InvalidStateTransitionError


class DeleteOrderUseCase:
    """
    Hard-delete a pending order that has no tickets.

    Flow (one transaction):
    1. pending -> cancelled through the shared conditional update, releasing the holds;
       this claims the order against a concurrent completion
    2. DELETE ... WHERE status = cancelled AND no tickets
    """

    def __init__(self, *, uow: AbstractUnitOfWork) -> None:
        self.uow = uow
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(
        self, *, order_id: int, user_id: Optional[int] = None, now: Optional[datetime] = None
    ) -> None:
        with self.tracer.start_as_current_span(
            'use_case.delete_order', attributes={'order.id': order_id}
        ):
            async with self.uow:
                lifecycle = OrderLifecycle(self.uow)
                order = await lifecycle.get_or_raise(order_id=order_id)
                if user_id is not None and order.user_id != user_id:
                    raise ForbiddenError('Only the buyer can delete this order')
                if order.status != OrderStatus.PENDING:
                    raise InvalidStateTransitionError(
                        entity='order', current=order.status, target='deleted'
                    )
                if await self.uow.ticket_repo.count_by_order(order_id=order_id):
                    raise ConflictError(f'Order {order_id} has tickets and cannot be deleted')

                claimed = await lifecycle.cancel_pending(
                    order_id=order_id, now=now or utc_now(), reason=ReleaseReason.ORDER_CANCELLED
                )
                if claimed is None:
                    await lifecycle.raise_transition_lost(order_id=order_id, target='deleted')
                if not await self.uow.order_repo.delete_if_without_tickets(
                    order_id=order_id, status=OrderStatus.CANCELLED
                ):
                    raise ConflictError(f'Order {order_id} changed while deleting')
                await self.uow.commit()

        Logger.base.info(f'🗑️ [ORDER] Deleted {order.order_number}')
