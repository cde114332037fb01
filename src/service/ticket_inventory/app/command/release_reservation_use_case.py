from datetime import datetime
from typing import Optional

from opentelemetry import trace

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import ForbiddenError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.platform.types.datetime_utils import utc_now
from src.service.ticket_inventory.app.service.inventory_ledger import InventoryLedger
from src.service.ticket_inventory.domain.entity.reservation_entity import Reservation
from src.service.ticket_inventory.domain.enum.inventory_status import (
    ReleaseReason,
    ReservationStatus,
)
from src.service.ticket_inventory.domain.inventory_errors import ReservationStateError
from src.service.ticket_inventory.domain.value_object.reservation_token import ReservationToken


def _ensure_releasable(reservation: Reservation) -> None:
    if reservation.status == ReservationStatus.CONSUMED:
        raise ReservationStateError(
            f'Reservation {reservation.id} was fulfilled; refund the order instead'
        )
    if reservation.order_id is not None:
        raise ReservationStateError(
            f'Reservation {reservation.id} belongs to order {reservation.order_id}; '
            'cancel the order instead'
        )


class ReleaseReservationUseCase:
    """
    Return a held reservation's units to sale.

    Idempotent: releasing an already released token is a no-op that returns False,
    and `sold` is restored exactly once.
    """

    def __init__(self, *, uow: AbstractUnitOfWork) -> None:
        self.uow = uow
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(
        self,
        *,
        token: ReservationToken,
        requesting_user_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Returns:
            True if this call released the hold, False if it was already released

        Raises:
            NotFoundError: Unknown reservation
            ForbiddenError: Caller does not own the reservation
            ReservationStateError: Reservation consumed or bound to an order
        """
        with self.tracer.start_as_current_span(
            'use_case.release_reservation',
            attributes={'reservation.id': token.reservation_id},
        ):
            async with self.uow:
                reservation = await self.uow.reservation_repo.get_by_id(
                    reservation_id=token.reservation_id
                )
                if reservation is None:
                    raise NotFoundError(f'Reservation {token.reservation_id} not found')
                if requesting_user_id is not None and reservation.owner_id != requesting_user_id:
                    raise ForbiddenError('Only the reservation owner can release it')
                if reservation.status == ReservationStatus.RELEASED:
                    return False
                _ensure_releasable(reservation)

                released = await InventoryLedger(self.uow).release(
                    reservation=reservation,
                    now=now or utc_now(),
                    reason=ReleaseReason.EXPLICIT,
                    unbound_only=True,
                )
                if not released:
                    # Lost a race: report the state that won
                    current = await self.uow.reservation_repo.get_by_id(
                        reservation_id=token.reservation_id
                    )
                    assert current is not None
                    if current.status == ReservationStatus.RELEASED:
                        return False
                    _ensure_releasable(current)
                await self.uow.commit()

        return released
