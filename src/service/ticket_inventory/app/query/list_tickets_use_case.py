from typing import Optional

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import ForbiddenError
from src.platform.logging.loguru_io import Logger
from src.service.ticket_inventory.app.query.list_orders_use_case import validate_page
from src.service.ticket_inventory.domain.entity.ticket_entity import Ticket


class ListTicketsUseCase:
    def __init__(self, *, uow: AbstractUnitOfWork) -> None:
        self.uow = uow

    @Logger.io
    async def list_buyer_tickets(
        self,
        *,
        user_id: int,
        requesting_user_id: Optional[int] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Ticket]:
        if requesting_user_id is not None and requesting_user_id != user_id:
            raise ForbiddenError('Only the buyer can list these tickets')
        validate_page(limit=limit, offset=offset)
        async with self.uow:
            return await self.uow.ticket_repo.list_by_user(
                user_id=user_id, limit=limit, offset=offset
            )

    @Logger.io
    async def list_event_tickets(
        self, *, event_id: int, limit: int = 100, offset: int = 0
    ) -> list[Ticket]:
        """Issued tickets of every ticket type of the event, newest first"""
        validate_page(limit=limit, offset=offset)
        async with self.uow:
            return await self.uow.ticket_repo.list_by_event(
                event_id=event_id, limit=limit, offset=offset
            )
