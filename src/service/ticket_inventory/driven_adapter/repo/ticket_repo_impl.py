from datetime import datetime
from typing import Any, Optional

from sqlalchemy import Select, func, select, update as sql_update
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.logging.loguru_io import Logger
from src.platform.types.datetime_utils import as_utc
from src.service.ticket_inventory.app.interface.i_ticket_repo import ITicketRepo
from src.service.ticket_inventory.domain.entity.ticket_entity import Ticket
from src.service.ticket_inventory.domain.enum.inventory_status import TicketStatus
from src.service.ticket_inventory.driven_adapter.model.order_model import OrderModel
from src.service.ticket_inventory.driven_adapter.model.ticket_model import TicketModel
from src.service.ticket_inventory.driven_adapter.model.ticket_type_model import TicketTypeModel


_COLUMNS = tuple(TicketModel.__table__.columns)


class TicketRepoImpl(ITicketRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _to_entity(row: Any) -> Ticket:
        return Ticket(
            id=row.id,
            order_id=row.order_id,
            ticket_type_id=row.ticket_type_id,
            qr_code=row.qr_code,
            status=TicketStatus(row.status),
            holder_name=row.holder_name,
            created_at=as_utc(row.created_at),
            used_at=as_utc(row.used_at),
        )

    @Logger.io
    async def create_many(self, *, tickets: list[Ticket]) -> list[Ticket]:
        db_tickets = [
            TicketModel(
                order_id=ticket.order_id,
                ticket_type_id=ticket.ticket_type_id,
                qr_code=ticket.qr_code,
                status=ticket.status.value,
                holder_name=ticket.holder_name,
                created_at=ticket.created_at,
            )
            for ticket in tickets
        ]
        self.session.add_all(db_tickets)
        await self.session.flush()
        return [self._to_entity(db) for db in db_tickets]

    @Logger.io
    async def list_by_order(self, *, order_id: int) -> list[Ticket]:
        result = await self.session.execute(
            select(TicketModel)
            .where(TicketModel.order_id == order_id)
            .order_by(TicketModel.id)
            .execution_options(populate_existing=True)
        )
        return [self._to_entity(db) for db in result.scalars().all()]

    @staticmethod
    def _newest_first(stmt: Select, *, limit: int, offset: int) -> Select:
        return (
            stmt.order_by(TicketModel.created_at.desc(), TicketModel.id.desc())
            .limit(limit)
            .offset(offset)
            .execution_options(populate_existing=True)
        )

    @Logger.io
    async def list_by_event(self, *, event_id: int, limit: int, offset: int = 0) -> list[Ticket]:
        stmt = (
            select(TicketModel)
            .join(TicketTypeModel, TicketTypeModel.id == TicketModel.ticket_type_id)
            .where(TicketTypeModel.event_id == event_id)
        )
        result = await self.session.execute(self._newest_first(stmt, limit=limit, offset=offset))
        return [self._to_entity(db) for db in result.scalars().all()]

    @Logger.io
    async def list_by_user(self, *, user_id: int, limit: int, offset: int = 0) -> list[Ticket]:
        stmt = (
            select(TicketModel)
            .join(OrderModel, OrderModel.id == TicketModel.order_id)
            .where(OrderModel.user_id == user_id)
        )
        result = await self.session.execute(self._newest_first(stmt, limit=limit, offset=offset))
        return [self._to_entity(db) for db in result.scalars().all()]

    @Logger.io
    async def get_by_qr_code(self, *, qr_code: str) -> Optional[Ticket]:
        result = await self.session.execute(
            select(TicketModel)
            .where(TicketModel.qr_code == qr_code)
            .execution_options(populate_existing=True)
        )
        db_ticket = result.scalar_one_or_none()
        return self._to_entity(db_ticket) if db_ticket else None

    @Logger.io
    async def count_by_order(
        self, *, order_id: int, status: Optional[TicketStatus] = None
    ) -> int:
        stmt = select(func.count(TicketModel.id)).where(TicketModel.order_id == order_id)
        if status is not None:
            stmt = stmt.where(TicketModel.status == status.value)
        return (await self.session.execute(stmt)).scalar_one()

    @Logger.io
    async def mark_used(self, *, ticket_id: int, now: datetime) -> Optional[Ticket]:
        row = (
            await self.session.execute(
                sql_update(TicketModel)
                .where(
                    TicketModel.id == ticket_id,
                    TicketModel.status == TicketStatus.ACTIVE.value,
                )
                .values(status=TicketStatus.USED.value, used_at=now)
                .returning(*_COLUMNS)
                .execution_options(synchronize_session=False)
            )
        ).one_or_none()
        return self._to_entity(row) if row is not None else None

    @Logger.io
    async def refund_active_by_order(self, *, order_id: int) -> int:
        result = await self.session.execute(
            sql_update(TicketModel)
            .where(
                TicketModel.order_id == order_id,
                TicketModel.status == TicketStatus.ACTIVE.value,
            )
            .values(status=TicketStatus.REFUNDED.value)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount  # type: ignore[attr-defined]
