from opentelemetry import trace

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import ForbiddenError
from src.platform.logging.loguru_io import Logger
from src.service.ticket_inventory.app.interface.i_payment_gateway import (
    IPaymentGateway,
    PaymentSession,
)
from src.service.ticket_inventory.app.service.order_lifecycle import OrderLifecycle
from src.service.ticket_inventory.domain.enum.inventory_status import OrderStatus
from src.service.ticket_inventory.domain.inventory_errors import InvalidStateTransitionError


class InitiatePaymentUseCase:
    """
    Hand a pending order to the payment gateway.

    The order is read and checked in a short transaction; the gateway call is
    made after that transaction has closed so no row stays locked while an
    external service answers.
    """

    def __init__(self, *, uow: AbstractUnitOfWork, payment_gateway: IPaymentGateway) -> None:
        self.uow = uow
        self.payment_gateway = payment_gateway
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(self, *, order_id: int, user_id: int) -> PaymentSession:
        with self.tracer.start_as_current_span(
            'use_case.initiate_payment', attributes={'order.id': order_id, 'user.id': user_id}
        ):
            async with self.uow:
                order = await OrderLifecycle(self.uow).get_or_raise(order_id=order_id)

            if order.user_id != user_id:
                raise ForbiddenError('Only the buyer can pay for this order')
            if not order.can_be_completed():
                raise InvalidStateTransitionError(
                    entity='order', current=order.status, target=OrderStatus.COMPLETED
                )

            session = await self.payment_gateway.initiate(
                order_id=order_id, amount=order.total_amount
            )

        Logger.base.info(f'💳 [PAYMENT] {order.order_number} -> {session.reference}')
        return session
