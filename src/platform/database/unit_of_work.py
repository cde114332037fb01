"""
Unit of Work Pattern - one database transaction per inventory operation

Architecture:
- UoW owns the session lifecycle (open on enter, rollback + close on exit)
- UoW owns commit; anything not committed is rolled back
- Repositories share the UoW session, so every effect of a use case lands
  in the same all-or-nothing transaction
- Callbacks registered with after_commit run only once the transaction commits
- Lock timeouts, deadlocks and lost connections leave as TransientStoreError
"""

from __future__ import annotations

import abc
from types import TracebackType
from typing import TYPE_CHECKING, Callable, Optional

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.platform.exception.exceptions import TransientStoreError
from src.platform.logging.loguru_io import Logger


if TYPE_CHECKING:
    from src.service.ticket_inventory.app.interface.i_order_repo import IOrderRepo
    from src.service.ticket_inventory.app.interface.i_reservation_repo import IReservationRepo
    from src.service.ticket_inventory.app.interface.i_ticket_repo import ITicketRepo
    from src.service.ticket_inventory.app.interface.i_ticket_type_repo import ITicketTypeRepo


# lock_not_available, deadlock_detected, serialization_failure
TRANSIENT_SQLSTATES = frozenset({'55P03', '40P01', '40001'})


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    # asyncpg errors reach SQLAlchemy re-raised by the dialect adapter, which copies
    # the code to `sqlstate` / `pgcode`; the driver error itself is the __cause__
    for source in (exc.orig, getattr(exc.orig, '__cause__', None)):
        code = getattr(source, 'sqlstate', None) or getattr(source, 'pgcode', None)
        if code:
            return str(code)
    return None


def is_transient_db_error(exc: BaseException) -> bool:
    if isinstance(exc, OperationalError):
        return True
    if not isinstance(exc, DBAPIError):
        return False
    return exc.connection_invalidated or _sqlstate(exc) in TRANSIENT_SQLSTATES


class AbstractUnitOfWork(abc.ABC):
    """
    Abstract Unit of Work for the ticket inventory

    Usage:
        async with uow:
            ticket_type = await uow.ticket_type_repo.get_for_update(ticket_type_id=...)
            await uow.reservation_repo.create(reservation=...)
            await uow.commit()
    """

    ticket_type_repo: ITicketTypeRepo
    reservation_repo: IReservationRepo
    order_repo: IOrderRepo
    ticket_repo: ITicketRepo

    async def __aenter__(self) -> AbstractUnitOfWork:
        self._after_commit_callbacks: list[Callable[[], None]] = []
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self._after_commit_callbacks = []
        await self.rollback()

    def after_commit(self, callback: Callable[[], None]) -> None:
        """Run `callback` after the next successful commit; dropped if the block rolls back"""
        self._after_commit_callbacks.append(callback)

    async def commit(self) -> None:
        """Commit the transaction, then run the after-commit callbacks"""
        await self._commit()
        callbacks, self._after_commit_callbacks = self._after_commit_callbacks, []
        for callback in callbacks:
            callback()

    @abc.abstractmethod
    async def _commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def rollback(self) -> None:
        raise NotImplementedError


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    """
    SQLAlchemy implementation of Unit of Work

    A fresh session is opened on every `async with`, so one instance can be
    reused by a use case across calls (and across retries).
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory
        self.session: Optional[AsyncSession] = None

    async def __aenter__(self) -> SqlAlchemyUnitOfWork:
        from src.service.ticket_inventory.driven_adapter.repo.order_repo_impl import (
            OrderRepoImpl,
        )
        from src.service.ticket_inventory.driven_adapter.repo.reservation_repo_impl import (
            ReservationRepoImpl,
        )
        from src.service.ticket_inventory.driven_adapter.repo.ticket_repo_impl import (
            TicketRepoImpl,
        )
        from src.service.ticket_inventory.driven_adapter.repo.ticket_type_repo_impl import (
            TicketTypeRepoImpl,
        )

        if self.session is not None:
            raise RuntimeError('UnitOfWork is already active; use one instance per concurrent call')
        self.session = self.session_factory()

        # Create repositories with shared session
        self.ticket_type_repo = TicketTypeRepoImpl(session=self.session)
        self.reservation_repo = ReservationRepoImpl(session=self.session)
        self.order_repo = OrderRepoImpl(session=self.session)
        self.ticket_repo = TicketRepoImpl(session=self.session)

        await super().__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        try:
            await super().__aexit__(exc_type, exc_val, exc_tb)
        finally:
            if self.session is not None:
                await self.session.close()
                self.session = None

        if exc_val is not None and is_transient_db_error(exc_val):
            Logger.base.warning(f'⚠️ [UOW] Transient store error: {type(exc_val).__name__}')
            raise TransientStoreError(f'Transient store error: {exc_val}') from exc_val

    async def _commit(self) -> None:
        assert self.session is not None, 'commit() called outside of `async with uow`'
        await self.session.commit()

    async def rollback(self) -> None:
        if self.session is not None:
            await self.session.rollback()
