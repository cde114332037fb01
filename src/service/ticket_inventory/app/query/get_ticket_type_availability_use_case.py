from datetime import datetime
from typing import Optional

from src.platform.config.core_setting import settings
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.platform.types.datetime_utils import utc_now
from src.service.ticket_inventory.app.command.sweep_expired_orders_use_case import (
    SweepExpiredOrdersUseCase,
)
from src.service.ticket_inventory.app.dto.inventory_dto import AvailabilityReport


class GetTicketTypeAvailabilityUseCase:
    """
    Remaining stock for one ticket type or a whole event.

    With a sweep use case wired in and LAZY_SWEEP_ON_READ on, a sweep pass runs
    before the read so abandoned holds do not show up as sold.
    """

    def __init__(
        self,
        *,
        uow: AbstractUnitOfWork,
        sweep_use_case: Optional[SweepExpiredOrdersUseCase] = None,
        lazy_sweep: Optional[bool] = None,
    ) -> None:
        self.uow = uow
        self.sweep_use_case = sweep_use_case
        self.lazy_sweep = settings.LAZY_SWEEP_ON_READ if lazy_sweep is None else lazy_sweep

    @Logger.io
    async def execute(
        self, *, ticket_type_id: int, now: Optional[datetime] = None
    ) -> AvailabilityReport:
        now = now or utc_now()
        await self._sweep(now=now)

        async with self.uow:
            ticket_type = await self.uow.ticket_type_repo.get_by_id(ticket_type_id=ticket_type_id)
        if ticket_type is None:
            raise NotFoundError(f'Ticket type {ticket_type_id} not found')
        return AvailabilityReport.from_ticket_type(ticket_type, now=now)

    @Logger.io
    async def list_by_event(
        self, *, event_id: int, now: Optional[datetime] = None
    ) -> list[AvailabilityReport]:
        now = now or utc_now()
        await self._sweep(now=now)

        async with self.uow:
            ticket_types = await self.uow.ticket_type_repo.list_by_event(event_id=event_id)

        Logger.base.info(f'📊 [AVAILABILITY] {len(ticket_types)} ticket types for event {event_id}')
        return [AvailabilityReport.from_ticket_type(tt, now=now) for tt in ticket_types]

    async def _sweep(self, *, now: datetime) -> None:
        if self.lazy_sweep and self.sweep_use_case is not None:
            await self.sweep_use_case.execute(now=now)
