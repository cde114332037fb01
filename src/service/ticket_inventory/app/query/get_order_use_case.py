from typing import Optional

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import ForbiddenError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.ticket_inventory.app.dto.inventory_dto import OrderDetail
from src.service.ticket_inventory.domain.entity.ticket_entity import Ticket


class GetOrderUseCase:
    def __init__(self, *, uow: AbstractUnitOfWork) -> None:
        self.uow = uow

    @Logger.io
    async def execute(self, *, order_id: int, user_id: Optional[int] = None) -> OrderDetail:
        """Order with its tickets and reservations; `user_id` restricts to the buyer"""
        async with self.uow:
            order = await self.uow.order_repo.get_by_id(order_id=order_id)
            if order is None:
                raise NotFoundError(f'Order {order_id} not found')
            if user_id is not None and order.user_id != user_id:
                raise ForbiddenError('Only the buyer can view this order')

            tickets = await self.uow.ticket_repo.list_by_order(order_id=order_id)
            reservations = await self.uow.reservation_repo.list_by_order(order_id=order_id)

        return OrderDetail(order=order, tickets=tickets, reservations=reservations)

    @Logger.io
    async def get_ticket(self, *, qr_code: str) -> Ticket:
        async with self.uow:
            ticket = await self.uow.ticket_repo.get_by_qr_code(qr_code=qr_code)
        if ticket is None:
            raise NotFoundError('Ticket not found')
        return ticket
