from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.logging.loguru_io import Logger
from src.service.ticket_inventory.domain.entity.order_entity import Order
from src.service.ticket_inventory.domain.inventory_errors import ValidationError


MAX_PAGE_SIZE = 100


def validate_page(*, limit: int, offset: int) -> None:
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f'limit must be between 1 and {MAX_PAGE_SIZE}')
    if offset < 0:
        raise ValidationError('offset cannot be negative')


class ListOrdersUseCase:
    def __init__(self, *, uow: AbstractUnitOfWork) -> None:
        self.uow = uow

    @Logger.io
    async def list_buyer_orders(
        self, *, user_id: int, limit: int = 20, offset: int = 0
    ) -> list[Order]:
        """The buyer's order history, newest first"""
        validate_page(limit=limit, offset=offset)
        async with self.uow:
            return await self.uow.order_repo.list_by_user(
                user_id=user_id, limit=limit, offset=offset
            )
