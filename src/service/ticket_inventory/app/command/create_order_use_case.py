from datetime import datetime
from typing import Optional

from opentelemetry import trace

from src.platform.config.core_setting import settings
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import ForbiddenError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.platform.types.datetime_utils import utc_now
from src.service.ticket_inventory.domain.entity.order_entity import Order, validate_billing
from src.service.ticket_inventory.domain.inventory_errors import (
    ReservationStateError,
    ValidationError,
)


class CreateOrderUseCase:
    """
    Turn a user's held reservations into one pending order.

    Flow (one transaction):
    1. Validate ids and billing fields (no I/O)
    2. Load the reservations; each must be held, unbound, unexpired, owned by the user
       and belong to a ticket type of `event_id`
    3. total_amount = sum(price x quantity)
    4. Insert the order (order number regenerated on collision)
    5. Bind the reservations to the order, guarded on held + unbound

    From here on the order decides the holds' fate: completion consumes them,
    cancellation or expiry releases them.
    """

    def __init__(self, *, uow: AbstractUnitOfWork, max_order_number_attempts: int = 0) -> None:
        self.uow = uow
        self.max_order_number_attempts = (
            max_order_number_attempts or settings.ORDER_NUMBER_MAX_ATTEMPTS
        )
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(
        self,
        *,
        user_id: int,
        event_id: int,
        reservation_ids: list[str],
        billing_email: str,
        billing_name: str,
        now: Optional[datetime] = None,
    ) -> Order:
        if not reservation_ids:
            raise ValidationError('At least one reservation is required')
        if len(set(reservation_ids)) != len(reservation_ids):
            raise ValidationError('Duplicate reservation ids')
        validate_billing(billing_email=billing_email, billing_name=billing_name)

        with self.tracer.start_as_current_span(
            'use_case.create_order', attributes={'user.id': user_id, 'event.id': event_id}
        ):
            async with self.uow:
                now = now or utc_now()
                reservations = await self.uow.reservation_repo.list_by_ids(
                    reservation_ids=reservation_ids
                )
                if len(reservations) != len(reservation_ids):
                    missing = set(reservation_ids) - {r.id for r in reservations}
                    raise NotFoundError(f'Reservations not found: {sorted(missing)}')

                total_amount = 0
                for reservation in reservations:
                    if reservation.owner_id != user_id:
                        raise ForbiddenError(f'Reservation {reservation.id} belongs to another user')
                    if not reservation.is_held or reservation.order_id is not None:
                        raise ReservationStateError(
                            f'Reservation {reservation.id} is not available for checkout'
                        )
                    if reservation.is_expired(now):
                        raise ReservationStateError(f'Reservation {reservation.id} has expired')

                    ticket_type = await self.uow.ticket_type_repo.get_by_id(
                        ticket_type_id=reservation.ticket_type_id
                    )
                    if ticket_type is None:
                        raise NotFoundError(f'Ticket type {reservation.ticket_type_id} not found')
                    if ticket_type.event_id != event_id:
                        raise ValidationError(
                            f'Reservation {reservation.id} is for a different event'
                        )
                    total_amount += ticket_type.price * reservation.quantity

                order = Order.create(
                    user_id=user_id,
                    event_id=event_id,
                    total_amount=total_amount,
                    billing_email=billing_email,
                    billing_name=billing_name,
                    now=now,
                )
                created = await self.uow.order_repo.create(
                    order=order, max_attempts=self.max_order_number_attempts
                )
                assert created.id is not None

                bound = await self.uow.reservation_repo.attach_to_order(
                    reservation_ids=reservation_ids, owner_id=user_id, order_id=created.id
                )
                if bound != len(reservation_ids):
                    raise ReservationStateError('Reservations changed while creating the order')
                await self.uow.commit()

        Logger.base.info(
            f'🧾 [ORDER] Created {created.order_number} (id={created.id}) user={user_id} '
            f'total={total_amount} reservations={len(reservation_ids)}'
        )
        return created
