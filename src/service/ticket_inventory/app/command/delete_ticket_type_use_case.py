from opentelemetry import trace

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import ConflictError, NotFoundError
from src.platform.logging.loguru_io import Logger


class DeleteTicketTypeUseCase:
    def __init__(self, *, uow: AbstractUnitOfWork) -> None:
        self.uow = uow
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(self, *, ticket_type_id: int) -> None:
        """
        Raises:
            NotFoundError: Ticket type does not exist
            ConflictError: Units are sold or held (sold > 0)
        """
        with self.tracer.start_as_current_span(
            'use_case.delete_ticket_type', attributes={'ticket_type.id': ticket_type_id}
        ):
            async with self.uow:
                current = await self.uow.ticket_type_repo.get_for_update(
                    ticket_type_id=ticket_type_id
                )
                if current is None:
                    raise NotFoundError(f'Ticket type {ticket_type_id} not found')
                if current.sold > 0:
                    raise ConflictError(
                        f'Cannot delete ticket type {ticket_type_id}: {current.sold} units sold'
                    )

                if not await self.uow.ticket_type_repo.delete_if_unsold(
                    ticket_type_id=ticket_type_id
                ):
                    raise ConflictError(f'Ticket type {ticket_type_id} was sold concurrently')
                await self.uow.commit()

        Logger.base.info(f'🗑️ [TICKET_TYPE] Deleted {ticket_type_id}')
