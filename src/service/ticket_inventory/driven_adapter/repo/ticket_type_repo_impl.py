"""
Ticket Type Repository Implementation

All writes to `sold` happen in adjust_inventory as one conditional UPDATE:

    UPDATE ticket_type
       SET sold = sold + :delta, version = version + 1
     WHERE id = :id
       AND sold + :delta BETWEEN 0 AND quantity
       [AND version = :expected_version]
    RETURNING ...

The CHECK constraints on the table back this up at the storage level.
"""

from typing import Any, Optional

from sqlalchemy import delete as sql_delete, select, update as sql_update
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.platform.types.datetime_utils import as_utc, utc_now
from src.service.ticket_inventory.app.interface.i_ticket_type_repo import ITicketTypeRepo
from src.service.ticket_inventory.domain.entity.ticket_type_entity import TicketType
from src.service.ticket_inventory.domain.inventory_errors import (
    InsufficientStockError,
    InventoryVersionConflictError,
    ReservationStateError,
)
from src.service.ticket_inventory.driven_adapter.model.ticket_type_model import TicketTypeModel


_COLUMNS = tuple(TicketTypeModel.__table__.columns)


class TicketTypeRepoImpl(ITicketTypeRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _to_entity(row: Any) -> TicketType:
        """Build the entity from a TicketTypeModel or a RETURNING row"""
        return TicketType(
            id=row.id,
            event_id=row.event_id,
            name=row.name,
            description=row.description,
            price=row.price,
            quantity=row.quantity,
            sold=row.sold,
            version=row.version,
            sale_start=as_utc(row.sale_start),
            sale_end=as_utc(row.sale_end),
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at),
        )

    @Logger.io
    async def create(self, *, ticket_type: TicketType) -> TicketType:
        db_ticket_type = TicketTypeModel(
            event_id=ticket_type.event_id,
            name=ticket_type.name,
            description=ticket_type.description,
            price=ticket_type.price,
            quantity=ticket_type.quantity,
            sold=0,
            version=0,
            sale_start=ticket_type.sale_start,
            sale_end=ticket_type.sale_end,
            created_at=ticket_type.created_at or utc_now(),
            updated_at=ticket_type.updated_at or utc_now(),
        )
        self.session.add(db_ticket_type)
        await self.session.flush()
        return self._to_entity(db_ticket_type)

    @Logger.io
    async def get_by_id(self, *, ticket_type_id: int) -> Optional[TicketType]:
        result = await self.session.execute(
            select(TicketTypeModel)
            .where(TicketTypeModel.id == ticket_type_id)
            .execution_options(populate_existing=True)
        )
        db_ticket_type = result.scalar_one_or_none()
        return self._to_entity(db_ticket_type) if db_ticket_type else None

    @Logger.io
    async def get_for_update(self, *, ticket_type_id: int) -> Optional[TicketType]:
        result = await self.session.execute(
            select(TicketTypeModel)
            .where(TicketTypeModel.id == ticket_type_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        db_ticket_type = result.scalar_one_or_none()
        return self._to_entity(db_ticket_type) if db_ticket_type else None

    @Logger.io
    async def list_by_event(self, *, event_id: int) -> list[TicketType]:
        result = await self.session.execute(
            select(TicketTypeModel)
            .where(TicketTypeModel.event_id == event_id)
            .order_by(TicketTypeModel.price, TicketTypeModel.id)
            .execution_options(populate_existing=True)
        )
        return [self._to_entity(db) for db in result.scalars().all()]

    @Logger.io
    async def adjust_inventory(
        self, *, ticket_type_id: int, delta: int, expected_version: Optional[int] = None
    ) -> TicketType:
        new_sold = TicketTypeModel.sold + delta
        stmt = (
            sql_update(TicketTypeModel)
            .where(
                TicketTypeModel.id == ticket_type_id,
                new_sold >= 0,
                new_sold <= TicketTypeModel.quantity,
            )
            .values(
                sold=new_sold,
                version=TicketTypeModel.version + 1,
                updated_at=utc_now(),
            )
            .returning(*_COLUMNS)
            .execution_options(synchronize_session=False)
        )
        if expected_version is not None:
            stmt = stmt.where(TicketTypeModel.version == expected_version)

        row = (await self.session.execute(stmt)).one_or_none()
        if row is not None:
            return self._to_entity(row)

        # Nothing matched: re-read to name the guard that failed
        current = await self.get_by_id(ticket_type_id=ticket_type_id)
        if current is None:
            raise NotFoundError(f'Ticket type {ticket_type_id} not found')
        if expected_version is not None and current.version != expected_version:
            raise InventoryVersionConflictError(
                ticket_type_id=ticket_type_id, expected_version=expected_version
            )
        if delta > 0:
            raise InsufficientStockError(
                ticket_type_id=ticket_type_id, requested=delta, available=current.available()
            )
        raise ReservationStateError(
            f'Cannot return {-delta} units to ticket type {ticket_type_id}: only {current.sold} sold'
        )

    @Logger.io
    async def update_details(self, *, ticket_type: TicketType) -> Optional[TicketType]:
        stmt = (
            sql_update(TicketTypeModel)
            .where(
                TicketTypeModel.id == ticket_type.id,
                TicketTypeModel.sold <= ticket_type.quantity,
            )
            .values(
                name=ticket_type.name,
                description=ticket_type.description,
                price=ticket_type.price,
                quantity=ticket_type.quantity,
                sale_start=ticket_type.sale_start,
                sale_end=ticket_type.sale_end,
                version=TicketTypeModel.version + 1,
                updated_at=ticket_type.updated_at or utc_now(),
            )
            .returning(*_COLUMNS)
            .execution_options(synchronize_session=False)
        )
        row = (await self.session.execute(stmt)).one_or_none()
        return self._to_entity(row) if row is not None else None

    @Logger.io
    async def delete_if_unsold(self, *, ticket_type_id: int) -> bool:
        result = await self.session.execute(
            sql_delete(TicketTypeModel)
            .where(TicketTypeModel.id == ticket_type_id, TicketTypeModel.sold == 0)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0  # type: ignore[attr-defined]
