from typing import Awaitable, Callable, TypeVar

import anyio

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import TransientStoreError
from src.platform.logging.loguru_io import Logger


_T = TypeVar('_T')


async def retry_on_transient(
    operation: Callable[[], Awaitable[_T]],
    *,
    attempts: int | None = None,
    delay: float | None = None,
    label: str = 'operation',
) -> _T:
    """
    Re-run a whole transactional operation on TransientStoreError only.

    Business outcomes (InsufficientStock, InvalidStateTransition, ...) propagate
    on the first attempt. Each attempt opens its own transaction, so there is no
    partial state to undo between attempts.
    """
    max_attempts = attempts or settings.TRANSIENT_RETRY_ATTEMPTS
    wait = settings.TRANSIENT_RETRY_DELAY_SECONDS if delay is None else delay

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except TransientStoreError as e:
            if attempt >= max_attempts:
                Logger.base.error(f'❌ [RETRY] {label} gave up after {attempt} attempts: {e}')
                raise
            Logger.base.warning(
                f'🔁 [RETRY] {label} {attempt}/{max_attempts}: {e.message}, retry in {wait}s'
            )
            await anyio.sleep(wait)
            wait *= 2

    raise AssertionError('unreachable')  # pragma: no cover
