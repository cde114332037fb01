"""
Inventory Ledger - the single caller of ITicketTypeRepo.adjust_inventory

Every change to a ticket type's `sold` counter goes through here, paired with
the reservation row that explains it:

    hold     sold += q    (reservation inserted as held by the caller)
    release  sold -= q    held -> released
    consume  sold  = sold held -> consumed (units turn into tickets)

`sold` counts reserved and issued units together; consuming a hold moves the
units from "held" to "issued" without touching the counter.
"""

from datetime import datetime
from functools import partial

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.inventory_metrics import inventory_metrics
from src.service.ticket_inventory.domain.entity.reservation_entity import Reservation
from src.service.ticket_inventory.domain.entity.ticket_type_entity import TicketType
from src.service.ticket_inventory.domain.enum.inventory_status import (
    ReleaseReason,
    ReservationStatus,
)
from src.service.ticket_inventory.domain.inventory_errors import ValidationError


def _report_release(reservation: Reservation, reason: ReleaseReason) -> None:
    inventory_metrics.record_release(
        ticket_type_id=reservation.ticket_type_id,
        quantity=reservation.quantity,
        reason=reason,
    )
    Logger.base.info(
        f'🔓 [RELEASE] reservation={reservation.id} ticket_type={reservation.ticket_type_id} '
        f'qty={reservation.quantity} reason={reason}'
    )


class InventoryLedger:
    """
    Bound to one Unit of Work; every method runs inside the caller's transaction
    and commits nothing on its own. Releases are reported once the caller commits.
    """

    def __init__(self, uow: AbstractUnitOfWork) -> None:
        self.uow = uow

    async def hold(self, *, ticket_type: TicketType, quantity: int) -> TicketType:
        """
        Take `quantity` units out of sale.

        `ticket_type` is the snapshot read under the row lock; its version is
        passed as the expected version, so a write that slipped past the lock
        surfaces as InventoryVersionConflictError instead of a silent overwrite.
        """
        if quantity <= 0:
            raise ValidationError('Hold quantity must be positive')
        assert ticket_type.id is not None
        return await self.uow.ticket_type_repo.adjust_inventory(
            ticket_type_id=ticket_type.id,
            delta=quantity,
            expected_version=ticket_type.version,
        )

    async def release(
        self,
        *,
        reservation: Reservation,
        now: datetime,
        reason: ReleaseReason,
        unbound_only: bool = False,
    ) -> bool:
        """
        Return a held reservation's units to sale.

        Returns:
            False when the reservation was no longer held (already released,
            consumed, or bound to an order when `unbound_only`); nothing changes then
        """
        flipped = await self.uow.reservation_repo.transition_status(
            reservation_id=reservation.id,
            expected=ReservationStatus.HELD,
            target=ReservationStatus.RELEASED,
            now=now,
            unbound_only=unbound_only,
        )
        if not flipped:
            return False

        await self.uow.ticket_type_repo.adjust_inventory(
            ticket_type_id=reservation.ticket_type_id, delta=-reservation.quantity
        )
        self.uow.after_commit(partial(_report_release, reservation, reason))
        return True

    async def release_for_order(
        self, *, order_id: int, now: datetime, reason: ReleaseReason
    ) -> int:
        """Release every held reservation bound to the order; returns units released"""
        held = await self.uow.reservation_repo.list_by_order(
            order_id=order_id, status=ReservationStatus.HELD
        )
        released_units = 0
        for reservation in held:
            if await self.release(reservation=reservation, now=now, reason=reason):
                released_units += reservation.quantity
        return released_units

    async def consume_for_order(self, *, order_id: int, now: datetime) -> list[Reservation]:
        """Mark the order's held reservations consumed; `sold` already covers them"""
        held = await self.uow.reservation_repo.list_by_order(
            order_id=order_id, status=ReservationStatus.HELD
        )
        consumed = []
        for reservation in held:
            if await self.uow.reservation_repo.transition_status(
                reservation_id=reservation.id,
                expected=ReservationStatus.HELD,
                target=ReservationStatus.CONSUMED,
                now=now,
            ):
                consumed.append(reservation)
        return consumed
