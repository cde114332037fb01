from datetime import datetime
from typing import Optional

from opentelemetry import trace

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.logging.loguru_io import Logger
from src.platform.types.datetime_utils import utc_now
from src.service.ticket_inventory.app.query.validate_ticket_use_case import (
    load_admissible_ticket,
)
from src.service.ticket_inventory.domain.entity.ticket_entity import Ticket
from src.service.ticket_inventory.domain.enum.inventory_status import TicketStatus
from src.service.ticket_inventory.domain.inventory_errors import InvalidStateTransitionError


class RedeemTicketUseCase:
    def __init__(self, *, uow: AbstractUnitOfWork) -> None:
        self.uow = uow
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(
        self, *, qr_code: str, event_id: int, now: Optional[datetime] = None
    ) -> Ticket:
        """Check-in: active -> used, once. The ticket must belong to the scanned event."""
        with self.tracer.start_as_current_span(
            'use_case.redeem_ticket', attributes={'event.id': event_id}
        ):
            async with self.uow:
                ticket = await load_admissible_ticket(
                    self.uow, qr_code=qr_code, event_id=event_id
                )

                assert ticket.id is not None
                used = await self.uow.ticket_repo.mark_used(
                    ticket_id=ticket.id, now=now or utc_now()
                )
                if used is None:
                    current = await self.uow.ticket_repo.get_by_qr_code(qr_code=qr_code)
                    raise InvalidStateTransitionError(
                        entity='ticket',
                        current=current.status if current else 'deleted',
                        target=TicketStatus.USED,
                    )
                await self.uow.commit()

        Logger.base.info(f'🎫 [TICKET] {used.id} redeemed for event {event_id}')
        return used
