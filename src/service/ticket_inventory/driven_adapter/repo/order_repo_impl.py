from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    delete as sql_delete,
    exists,
    select,
    update as sql_update,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.exception.exceptions import ConflictError
from src.platform.logging.loguru_io import Logger
from src.platform.types.datetime_utils import as_utc
from src.service.ticket_inventory.app.interface.i_order_repo import IOrderRepo
from src.service.ticket_inventory.domain.entity.order_entity import Order
from src.service.ticket_inventory.domain.enum.inventory_status import OrderStatus
from src.service.ticket_inventory.driven_adapter.model.order_model import OrderModel
from src.service.ticket_inventory.driven_adapter.model.ticket_model import TicketModel


_COLUMNS = tuple(OrderModel.__table__.columns)


def _is_order_number_collision(error: IntegrityError) -> bool:
    return 'order_number' in str(error.orig)


class OrderRepoImpl(IOrderRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _to_entity(row: Any) -> Order:
        return Order(
            id=row.id,
            user_id=row.user_id,
            event_id=row.event_id,
            order_number=row.order_number,
            total_amount=row.total_amount,
            status=OrderStatus(row.status),
            payment_id=row.payment_id,
            billing_email=row.billing_email,
            billing_name=row.billing_name,
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at),
        )

    @Logger.io
    async def create(self, *, order: Order, max_attempts: int) -> Order:
        for attempt in range(1, max_attempts + 1):
            db_order = OrderModel(
                user_id=order.user_id,
                event_id=order.event_id,
                order_number=order.order_number,
                total_amount=order.total_amount,
                status=order.status.value,
                payment_id=order.payment_id,
                billing_email=order.billing_email,
                billing_name=order.billing_name,
                created_at=order.created_at,
                updated_at=order.updated_at,
            )
            try:
                # SAVEPOINT: a collision must not poison the surrounding transaction
                async with self.session.begin_nested():
                    self.session.add(db_order)
                    await self.session.flush()
            except IntegrityError as e:
                if not _is_order_number_collision(e):
                    raise
                Logger.base.warning(
                    f'⚠️ [ORDER] Order number collision {order.order_number} '
                    f'({attempt}/{max_attempts}), regenerating'
                )
                order = order.with_new_order_number()
                continue
            return self._to_entity(db_order)

        raise ConflictError(f'Could not allocate a unique order number after {max_attempts} tries')

    @Logger.io
    async def get_by_id(self, *, order_id: int) -> Optional[Order]:
        result = await self.session.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .execution_options(populate_existing=True)
        )
        db_order = result.scalar_one_or_none()
        return self._to_entity(db_order) if db_order else None

    @Logger.io
    async def get_by_order_number(self, *, order_number: str) -> Optional[Order]:
        result = await self.session.execute(
            select(OrderModel)
            .where(OrderModel.order_number == order_number)
            .execution_options(populate_existing=True)
        )
        db_order = result.scalar_one_or_none()
        return self._to_entity(db_order) if db_order else None

    @Logger.io
    async def list_by_user(self, *, user_id: int, limit: int, offset: int = 0) -> list[Order]:
        result = await self.session.execute(
            select(OrderModel)
            .where(OrderModel.user_id == user_id)
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .limit(limit)
            .offset(offset)
            .execution_options(populate_existing=True)
        )
        return [self._to_entity(db) for db in result.scalars().all()]

    @Logger.io
    async def transition_status(
        self,
        *,
        order_id: int,
        expected: OrderStatus,
        target: OrderStatus,
        now: datetime,
        payment_id: Optional[str] = None,
    ) -> Optional[Order]:
        values: dict[str, Any] = {'status': target.value, 'updated_at': now}
        if payment_id is not None:
            values['payment_id'] = payment_id

        row = (
            await self.session.execute(
                sql_update(OrderModel)
                .where(OrderModel.id == order_id, OrderModel.status == expected.value)
                .values(**values)
                .returning(*_COLUMNS)
                .execution_options(synchronize_session=False)
            )
        ).one_or_none()
        return self._to_entity(row) if row is not None else None

    @Logger.io
    async def list_expired_pending_ids(self, *, cutoff: datetime, limit: int) -> list[int]:
        result = await self.session.execute(
            select(OrderModel.id)
            .where(
                OrderModel.status == OrderStatus.PENDING.value,
                OrderModel.created_at < cutoff,
            )
            .order_by(OrderModel.created_at, OrderModel.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    @Logger.io
    async def delete_if_without_tickets(self, *, order_id: int, status: OrderStatus) -> bool:
        has_tickets = exists().where(TicketModel.order_id == order_id)
        result = await self.session.execute(
            sql_delete(OrderModel)
            .where(
                OrderModel.id == order_id,
                OrderModel.status == status.value,
                ~has_tickets,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0  # type: ignore[attr-defined]
