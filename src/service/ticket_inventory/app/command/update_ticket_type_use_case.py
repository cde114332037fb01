from datetime import datetime
from typing import Optional

from opentelemetry import trace

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.ticket_inventory.domain.entity.ticket_type_entity import TicketType
from src.service.ticket_inventory.domain.inventory_errors import ValidationError


class UpdateTicketTypeUseCase:
    """
    Partial update of a ticket type.

    Quantity can never drop below the units already sold: the entity checks it
    against the locked row, and the UPDATE re-checks `sold <= quantity` itself.
    `sold` is not writable here.
    """

    def __init__(self, *, uow: AbstractUnitOfWork) -> None:
        self.uow = uow
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(
        self,
        *,
        ticket_type_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        price: Optional[int] = None,
        quantity: Optional[int] = None,
        sale_start: Optional[datetime] = None,
        sale_end: Optional[datetime] = None,
    ) -> TicketType:
        with self.tracer.start_as_current_span(
            'use_case.update_ticket_type', attributes={'ticket_type.id': ticket_type_id}
        ):
            async with self.uow:
                current = await self.uow.ticket_type_repo.get_for_update(
                    ticket_type_id=ticket_type_id
                )
                if current is None:
                    raise NotFoundError(f'Ticket type {ticket_type_id} not found')

                updated = current.update(
                    name=name,
                    description=description,
                    price=price,
                    quantity=quantity,
                    sale_start=sale_start,
                    sale_end=sale_end,
                )
                saved = await self.uow.ticket_type_repo.update_details(ticket_type=updated)
                if saved is None:
                    raise ValidationError(
                        f'Cannot reduce quantity of ticket type {ticket_type_id} below sold count'
                    )
                await self.uow.commit()

        return saved
