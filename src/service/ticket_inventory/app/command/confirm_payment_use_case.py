from datetime import datetime
from typing import Optional

from opentelemetry import trace

from src.platform.database.retry import retry_on_transient
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.logging.loguru_io import Logger
from src.platform.types.datetime_utils import utc_now
from src.service.ticket_inventory.app.command.complete_order_use_case import (
    CompleteOrderUseCase,
)
from src.service.ticket_inventory.app.dto.inventory_dto import FulfillmentResult
from src.service.ticket_inventory.app.service.order_lifecycle import OrderLifecycle
from src.service.ticket_inventory.domain.entity.order_entity import Order
from src.service.ticket_inventory.domain.enum.inventory_status import (
    OrderStatus,
    ReleaseReason,
    ReservationStatus,
)
from src.service.ticket_inventory.domain.inventory_errors import (
    InvalidStateTransitionError,
    ValidationError,
)
from src.service.ticket_inventory.domain.value_object.ticket_spec import TicketSpec


class ConfirmPaymentUseCase:
    """
    Gateway callback.

    success=True  -> fulfillment transaction with one ticket per reserved unit
    success=False -> pending order is cancelled and its holds released

    Both paths are safe to replay: the callback may arrive more than once.
    """

    def __init__(
        self, *, uow: AbstractUnitOfWork, complete_order_use_case: CompleteOrderUseCase
    ) -> None:
        self.uow = uow
        self.complete_order_use_case = complete_order_use_case
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(
        self,
        *,
        order_id: int,
        reference: str,
        success: bool,
        now: Optional[datetime] = None,
    ) -> Order:
        if not reference or not reference.strip():
            raise ValidationError('Payment reference is required')

        with self.tracer.start_as_current_span(
            'use_case.confirm_payment',
            attributes={'order.id': order_id, 'payment.success': success},
        ):
            if success:
                result = await retry_on_transient(
                    lambda: self._fulfill(order_id=order_id, reference=reference, now=now),
                    label=f'fulfill order {order_id}',
                )
                return result.order

            return await retry_on_transient(
                lambda: self._fail(order_id=order_id, now=now),
                label=f'cancel order {order_id}',
            )

    async def _fulfill(
        self, *, order_id: int, reference: str, now: Optional[datetime]
    ) -> FulfillmentResult:
        async with self.uow:
            order = await OrderLifecycle(self.uow).get_or_raise(order_id=order_id)
            reservations = await self.uow.reservation_repo.list_by_order(order_id=order_id)

        # A non-pending order still goes through the fulfillment transaction,
        # which decides between idempotent replay and conflict.
        relevant = [r for r in reservations if r.status == ReservationStatus.HELD]
        if order.status != OrderStatus.PENDING or not relevant:
            relevant = reservations
        specs = [
            TicketSpec(ticket_type_id=reservation.ticket_type_id)
            for reservation in relevant
            for _ in range(reservation.quantity)
        ]
        return await self.complete_order_use_case.execute(
            order_id=order_id, payment_reference=reference, ticket_specs=specs, now=now
        )

    async def _fail(self, *, order_id: int, now: Optional[datetime]) -> Order:
        async with self.uow:
            lifecycle = OrderLifecycle(self.uow)
            outcome = await lifecycle.cancel_pending(
                order_id=order_id,
                now=now or utc_now(),
                reason=ReleaseReason.ORDER_CANCELLED,
            )
            if outcome is None:
                order = await lifecycle.get_or_raise(order_id=order_id)
                if order.status == OrderStatus.CANCELLED:
                    Logger.base.info(f'♻️ [PAYMENT] {order.order_number} already cancelled')
                    return order
                raise InvalidStateTransitionError(
                    entity='order', current=order.status, target=OrderStatus.CANCELLED
                )
            await self.uow.commit()

        Logger.base.warning(
            f'💳 [PAYMENT] Payment failed, {outcome.order.order_number} cancelled, '
            f'{outcome.released_units} units released'
        )
        return outcome.order
