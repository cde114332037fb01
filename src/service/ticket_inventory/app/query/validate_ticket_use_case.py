from opentelemetry import trace

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.ticket_inventory.domain.entity.ticket_entity import Ticket
from src.service.ticket_inventory.domain.enum.inventory_status import TicketStatus
from src.service.ticket_inventory.domain.inventory_errors import (
    InvalidStateTransitionError,
    ValidationError,
)


async def load_admissible_ticket(uow: AbstractUnitOfWork, *, qr_code: str, event_id: int) -> Ticket:
    """
    Entry check shared by validation and redemption; reads only.

    Raises:
        NotFoundError: Unknown QR code
        ValidationError: Ticket belongs to another event
        InvalidStateTransitionError: Ticket already used or refunded
    """
    ticket = await uow.ticket_repo.get_by_qr_code(qr_code=qr_code)
    if ticket is None:
        raise NotFoundError('Ticket not found')
    ticket_type = await uow.ticket_type_repo.get_by_id(ticket_type_id=ticket.ticket_type_id)
    if ticket_type is None or ticket_type.event_id != event_id:
        raise ValidationError('Ticket is not valid for this event')
    if not ticket.can_be_used():
        raise InvalidStateTransitionError(
            entity='ticket', current=ticket.status, target=TicketStatus.USED
        )
    return ticket


class ValidateTicketUseCase:
    """Answer "would this QR code get in?" without checking the ticket in"""

    def __init__(self, *, uow: AbstractUnitOfWork) -> None:
        self.uow = uow
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(self, *, qr_code: str, event_id: int) -> Ticket:
        with self.tracer.start_as_current_span(
            'use_case.validate_ticket', attributes={'event.id': event_id}
        ):
            async with self.uow:
                return await load_admissible_ticket(self.uow, qr_code=qr_code, event_id=event_id)
