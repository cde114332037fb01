"""
Integration fixtures: one SQLite database file per test

Every use case instance gets its own SqlAlchemyUnitOfWork, the same way the
DI container hands them out, so concurrent calls never share a session.
"""

from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.platform.database.orm_db_setting import (
    build_async_engine,
    build_session_maker,
    create_db_and_tables,
)
from src.platform.database.unit_of_work import SqlAlchemyUnitOfWork
from src.service.ticket_inventory.app.command.create_ticket_type_use_case import (
    CreateTicketTypeUseCase,
)
from src.service.ticket_inventory.domain.entity.ticket_type_entity import TicketType
from test.service.ticket_inventory.inventory_test_constants import EVENT_ID


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    engine = build_async_engine(f'sqlite+aiosqlite:///{tmp_path / "inventory.db"}')
    await create_db_and_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_maker(engine)


@pytest.fixture
def new_uow(
    session_maker: async_sessionmaker[AsyncSession],
) -> Callable[[], SqlAlchemyUnitOfWork]:
    return lambda: SqlAlchemyUnitOfWork(session_maker)


@pytest.fixture
def create_ticket_type(new_uow, now: datetime):
    async def _create(
        *, quantity: int = 100, price: int = 3750, name: str = 'General'
    ) -> TicketType:
        return await CreateTicketTypeUseCase(uow=new_uow()).execute(
            event_id=EVENT_ID,
            name=name,
            price=price,
            quantity=quantity,
            sale_start=now - timedelta(days=1),
            sale_end=now + timedelta(days=30),
        )

    return _create


@pytest.fixture
def get_ticket_type(new_uow):
    async def _get(ticket_type_id: int) -> TicketType:
        uow = new_uow()
        async with uow:
            ticket_type = await uow.ticket_type_repo.get_by_id(ticket_type_id=ticket_type_id)
        assert ticket_type is not None
        return ticket_type

    return _get
