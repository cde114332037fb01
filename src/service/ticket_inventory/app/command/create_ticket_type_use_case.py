from datetime import datetime

from opentelemetry import trace

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.logging.loguru_io import Logger
from src.service.ticket_inventory.domain.entity.ticket_type_entity import TicketType


class CreateTicketTypeUseCase:
    def __init__(self, *, uow: AbstractUnitOfWork) -> None:
        self.uow = uow
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(
        self,
        *,
        event_id: int,
        name: str,
        price: int,
        quantity: int,
        sale_start: datetime,
        sale_end: datetime,
        description: str = '',
    ) -> TicketType:
        """
        Raises:
            ValidationError: price < 0, quantity < 1, window shorter than one hour, ...
        """
        # Validation happens here, before the transaction opens
        ticket_type = TicketType.create(
            event_id=event_id,
            name=name,
            price=price,
            quantity=quantity,
            sale_start=sale_start,
            sale_end=sale_end,
            description=description,
        )

        with self.tracer.start_as_current_span(
            'use_case.create_ticket_type', attributes={'event.id': event_id}
        ):
            async with self.uow:
                created = await self.uow.ticket_type_repo.create(ticket_type=ticket_type)
                await self.uow.commit()

        Logger.base.info(
            f'🎫 [TICKET_TYPE] Created {created.id} event={event_id} qty={quantity} price={price}'
        )
        return created
