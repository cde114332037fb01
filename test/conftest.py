"""
Test Configuration

Environment setup MUST happen before any application import: settings and the
loguru sinks read it at import time.

Architecture:
- Unit tests (test/**/unit/): repositories replaced by AsyncMock, no database
- Integration tests (test/**/integration/): one SQLite file per test, real
  SqlAlchemyUnitOfWork and repositories
"""

import os
from pathlib import Path


def _early_setup_test_environment() -> None:
    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)

    os.environ.setdefault('DATABASE_URL', 'sqlite+aiosqlite:///:memory:')
    # Concurrent writers queue on SQLite's write lock; give them room
    os.environ.setdefault('DB_LOCK_TIMEOUT_MS', '15000')
    os.environ.setdefault('TRANSIENT_RETRY_DELAY_SECONDS', '0')
    os.environ.setdefault('DEPLOY_ENV', 'test')


_early_setup_test_environment()

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def sale_window(now: datetime) -> tuple[datetime, datetime]:
    """A window that is open at `now`"""
    return now - timedelta(days=1), now + timedelta(days=30)
