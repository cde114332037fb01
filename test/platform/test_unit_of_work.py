"""
Unit tests for the Unit of Work error mapping and after-commit callbacks

Postgres lock timeouts and deadlocks arrive from asyncpg as plain DBAPIError
(not OperationalError); they must still leave the UoW as TransientStoreError.
"""

from unittest.mock import AsyncMock, MagicMock

from asyncpg.exceptions import (
    DeadlockDetectedError,
    LockNotAvailableError,
    SerializationError,
    UniqueViolationError,
)
import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from src.platform.database.unit_of_work import SqlAlchemyUnitOfWork, is_transient_db_error
from src.platform.exception.exceptions import TransientStoreError


class AdaptedDriverError(Exception):
    """Shape of the error SQLAlchemy's asyncpg adapter re-raises from the driver error"""


def _translated(driver_error: Exception, *, copy_code: bool = True) -> DBAPIError:
    adapted = AdaptedDriverError(f'{type(driver_error)}: {driver_error}')
    if copy_code:
        adapted.pgcode = adapted.sqlstate = getattr(driver_error, 'sqlstate', None)
    adapted.__cause__ = driver_error
    return DBAPIError('UPDATE ticket_type SET sold = sold + 1', {}, adapted)


@pytest.mark.unit
class TestIsTransientDbError:
    @pytest.mark.parametrize(
        'driver_error',
        [
            LockNotAvailableError('canceling statement due to lock timeout'),
            DeadlockDetectedError('deadlock detected'),
            SerializationError('could not serialize access'),
        ],
    )
    def test_postgres_lock_and_deadlock_codes_are_transient(self, driver_error):
        assert is_transient_db_error(_translated(driver_error)) is True

    def test_code_is_found_on_the_driver_error_behind_the_adapter(self):
        error = _translated(LockNotAvailableError('lock timeout'), copy_code=False)

        assert is_transient_db_error(error) is True

    def test_constraint_violation_is_not_transient(self):
        error = _translated(UniqueViolationError('duplicate key value'))

        assert is_transient_db_error(error) is False

    def test_operational_and_invalidated_errors_are_transient(self):
        assert is_transient_db_error(
            OperationalError('BEGIN IMMEDIATE', {}, Exception('database is locked'))
        )
        assert is_transient_db_error(
            DBAPIError('SELECT 1', {}, Exception('gone'), connection_invalidated=True)
        )

    def test_integrity_error_is_not_transient(self):
        error = IntegrityError('INSERT', {}, Exception('UNIQUE constraint failed'))

        assert is_transient_db_error(error) is False


def _uow_with_mock_session() -> tuple[SqlAlchemyUnitOfWork, AsyncMock]:
    session = AsyncMock()
    return SqlAlchemyUnitOfWork(MagicMock(return_value=session)), session


@pytest.mark.unit
class TestSqlAlchemyUnitOfWork:
    async def test_lock_timeout_inside_the_block_leaves_as_transient(self):
        uow, session = _uow_with_mock_session()
        lock_timeout = _translated(LockNotAvailableError('lock timeout'))

        with pytest.raises(TransientStoreError) as exc_info:
            async with uow:
                raise lock_timeout

        assert exc_info.value.__cause__ is lock_timeout
        session.rollback.assert_awaited_once()
        session.close.assert_awaited_once()
        assert uow.session is None

    async def test_non_transient_errors_pass_through_unchanged(self):
        uow, _ = _uow_with_mock_session()
        duplicate = _translated(UniqueViolationError('duplicate key value'))

        with pytest.raises(DBAPIError) as exc_info:
            async with uow:
                raise duplicate

        assert exc_info.value is duplicate

    async def test_after_commit_callbacks_run_only_on_commit(self):
        uow, _ = _uow_with_mock_session()
        calls: list[str] = []

        async with uow:
            uow.after_commit(lambda: calls.append('committed'))
            assert calls == []
            await uow.commit()

        with pytest.raises(RuntimeError):
            async with uow:
                uow.after_commit(lambda: calls.append('rolled back'))
                raise RuntimeError('abort')

        assert calls == ['committed']
