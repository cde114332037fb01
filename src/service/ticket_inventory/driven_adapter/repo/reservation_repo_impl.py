from datetime import datetime
from typing import Any, Optional

from sqlalchemy import Select, select, update as sql_update
from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.logging.loguru_io import Logger
from src.platform.types.datetime_utils import as_utc
from src.service.ticket_inventory.app.interface.i_reservation_repo import IReservationRepo
from src.service.ticket_inventory.domain.entity.reservation_entity import Reservation
from src.service.ticket_inventory.domain.enum.inventory_status import ReservationStatus
from src.service.ticket_inventory.driven_adapter.model.reservation_model import ReservationModel


class ReservationRepoImpl(IReservationRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _to_entity(row: Any) -> Reservation:
        return Reservation(
            id=row.id,
            ticket_type_id=row.ticket_type_id,
            owner_id=row.owner_id,
            order_id=row.order_id,
            quantity=row.quantity,
            status=ReservationStatus(row.status),
            expires_at=as_utc(row.expires_at),
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at),
        )

    def _select(self) -> Select:
        return select(ReservationModel).execution_options(populate_existing=True)

    @Logger.io
    async def create(self, *, reservation: Reservation) -> Reservation:
        db_reservation = ReservationModel(
            id=reservation.id,
            ticket_type_id=reservation.ticket_type_id,
            owner_id=reservation.owner_id,
            order_id=reservation.order_id,
            quantity=reservation.quantity,
            status=reservation.status.value,
            expires_at=reservation.expires_at,
            created_at=reservation.created_at,
            updated_at=reservation.updated_at,
        )
        self.session.add(db_reservation)
        await self.session.flush()
        return self._to_entity(db_reservation)

    @Logger.io
    async def get_by_id(self, *, reservation_id: str) -> Optional[Reservation]:
        result = await self.session.execute(
            self._select().where(ReservationModel.id == reservation_id)
        )
        db_reservation = result.scalar_one_or_none()
        return self._to_entity(db_reservation) if db_reservation else None

    @Logger.io
    async def list_by_ids(self, *, reservation_ids: list[str]) -> list[Reservation]:
        if not reservation_ids:
            return []
        result = await self.session.execute(
            self._select()
            .where(ReservationModel.id.in_(reservation_ids))
            .order_by(ReservationModel.id)
        )
        return [self._to_entity(db) for db in result.scalars().all()]

    @Logger.io
    async def list_by_order(
        self, *, order_id: int, status: Optional[ReservationStatus] = None
    ) -> list[Reservation]:
        stmt = self._select().where(ReservationModel.order_id == order_id)
        if status is not None:
            stmt = stmt.where(ReservationModel.status == status.value)
        result = await self.session.execute(
            stmt.order_by(ReservationModel.ticket_type_id, ReservationModel.id)
        )
        return [self._to_entity(db) for db in result.scalars().all()]

    @Logger.io
    async def attach_to_order(
        self, *, reservation_ids: list[str], owner_id: int, order_id: int
    ) -> int:
        if not reservation_ids:
            return 0
        result = await self.session.execute(
            sql_update(ReservationModel)
            .where(
                ReservationModel.id.in_(reservation_ids),
                ReservationModel.owner_id == owner_id,
                ReservationModel.status == ReservationStatus.HELD.value,
                ReservationModel.order_id.is_(None),
            )
            .values(order_id=order_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount  # type: ignore[attr-defined]

    @Logger.io
    async def transition_status(
        self,
        *,
        reservation_id: str,
        expected: ReservationStatus,
        target: ReservationStatus,
        now: datetime,
        unbound_only: bool = False,
    ) -> bool:
        stmt = (
            sql_update(ReservationModel)
            .where(
                ReservationModel.id == reservation_id,
                ReservationModel.status == expected.value,
            )
            .values(status=target.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if unbound_only:
            stmt = stmt.where(ReservationModel.order_id.is_(None))
        result = await self.session.execute(stmt)
        return result.rowcount > 0  # type: ignore[attr-defined]

    @Logger.io
    async def list_expired_orphans(self, *, now: datetime, limit: int) -> list[Reservation]:
        result = await self.session.execute(
            self._select()
            .where(
                ReservationModel.status == ReservationStatus.HELD.value,
                ReservationModel.order_id.is_(None),
                ReservationModel.expires_at <= now,
            )
            .order_by(ReservationModel.expires_at)
            .limit(limit)
        )
        return [self._to_entity(db) for db in result.scalars().all()]
