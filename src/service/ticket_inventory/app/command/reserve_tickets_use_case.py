from datetime import datetime, timedelta
from time import perf_counter
from typing import Optional

from opentelemetry import trace

from src.platform.config.core_setting import settings
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.inventory_metrics import inventory_metrics
from src.platform.types.datetime_utils import utc_now
from src.service.ticket_inventory.app.service.inventory_ledger import InventoryLedger
from src.service.ticket_inventory.domain.entity.reservation_entity import (
    Reservation,
    validate_reservation_request,
)
from src.service.ticket_inventory.domain.inventory_errors import (
    InsufficientStockError,
    SaleWindowClosedError,
    ValidationError,
)
from src.service.ticket_inventory.domain.value_object.reservation_token import ReservationToken


class ReserveTicketsUseCase:
    """
    Hold `quantity` units of one ticket type for a user.

    Flow (one transaction):
    1. Validate the request (no I/O)
    2. SELECT ... FOR UPDATE on the ticket type row
    3. Check sale window and availability against the locked row
    4. sold += quantity through the inventory ledger
    5. Insert the held reservation row, commit

    The row lock is the serialisation point: concurrent reserves on the same
    ticket type queue on it, so `sold` can never pass `quantity`.
    Business outcomes (InsufficientStockError, SaleWindowClosedError) are not retried.

    Dependencies:
    - uow: ticket_type_repo, reservation_repo
    """

    def __init__(
        self,
        *,
        uow: AbstractUnitOfWork,
        default_ttl: Optional[timedelta] = None,
        max_quantity: Optional[int] = None,
    ) -> None:
        self.uow = uow
        self.default_ttl = (
            default_ttl
            if default_ttl is not None
            else timedelta(minutes=settings.RESERVATION_TTL_MINUTES)
        )
        self.max_quantity = max_quantity or settings.MAX_TICKETS_PER_RESERVATION
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(
        self,
        *,
        ticket_type_id: int,
        quantity: int,
        user_id: int,
        ttl: Optional[timedelta] = None,
        now: Optional[datetime] = None,
    ) -> ReservationToken:
        """
        Returns:
            Token {reservation_id, ticket_type_id, quantity, expires_at}

        Raises:
            ValidationError: Bad quantity / ttl / ids
            NotFoundError: Unknown ticket type
            SaleNotStartedError / SaleEndedError: Outside the sale window
            InsufficientStockError: available < quantity
            TransientStoreError: Lock timeout or connection loss (retryable)
        """
        if ttl is None:
            ttl = self.default_ttl
        validate_reservation_request(quantity=quantity, ttl=ttl, max_quantity=self.max_quantity)
        if ticket_type_id <= 0 or user_id <= 0:
            raise ValidationError('ticket_type_id and user_id must be positive')

        with self.tracer.start_as_current_span(
            'use_case.reserve_tickets',
            attributes={'ticket_type.id': ticket_type_id, 'reservation.quantity': quantity},
        ):
            started = perf_counter()
            async with self.uow:
                ticket_type = await self.uow.ticket_type_repo.get_for_update(
                    ticket_type_id=ticket_type_id
                )
                if ticket_type is None:
                    raise NotFoundError(f'Ticket type {ticket_type_id} not found')

                # Evaluated after the lock is granted
                now = now or utc_now()
                try:
                    ticket_type.ensure_reservable(quantity=quantity, now=now)
                except InsufficientStockError:
                    inventory_metrics.record_reservation(
                        ticket_type_id=ticket_type_id, result='insufficient_stock'
                    )
                    raise
                except SaleWindowClosedError:
                    inventory_metrics.record_reservation(
                        ticket_type_id=ticket_type_id, result='sale_closed'
                    )
                    raise

                await InventoryLedger(self.uow).hold(ticket_type=ticket_type, quantity=quantity)
                reservation = Reservation.create(
                    ticket_type_id=ticket_type_id,
                    owner_id=user_id,
                    quantity=quantity,
                    ttl=ttl,
                    now=now,
                    max_quantity=self.max_quantity,
                )
                await self.uow.reservation_repo.create(reservation=reservation)
                await self.uow.commit()

            inventory_metrics.reservation_duration.observe(perf_counter() - started)
            inventory_metrics.record_reservation(
                ticket_type_id=ticket_type_id, result='held', quantity=quantity
            )

        Logger.base.info(
            f'🔒 [RESERVE] reservation={reservation.id} ticket_type={ticket_type_id} '
            f'user={user_id} qty={quantity} expires_at={reservation.expires_at.isoformat()}'
        )
        return reservation.to_token()
