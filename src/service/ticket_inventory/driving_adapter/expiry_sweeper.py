from typing import Callable, Optional

import anyio

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger
from src.service.ticket_inventory.app.command.sweep_expired_orders_use_case import (
    SweepExpiredOrdersUseCase,
)
from src.service.ticket_inventory.app.dto.inventory_dto import SweepResult


class ExpirySweeper:
    """
    Periodic driver for SweepExpiredOrdersUseCase.

    `use_case_factory` is called once per pass so each pass gets its own Unit of
    Work. A pass that blows up is logged and the loop keeps going; only
    cancellation or `stop()` ends it.
    """

    def __init__(
        self,
        *,
        use_case_factory: Callable[[], SweepExpiredOrdersUseCase],
        interval_seconds: Optional[float] = None,
    ) -> None:
        self.use_case_factory = use_case_factory
        self.interval_seconds = interval_seconds or settings.SWEEP_INTERVAL_SECONDS
        self._stop_event = anyio.Event()

    async def run_once(self) -> SweepResult:
        return await self.use_case_factory().execute()

    async def run(self) -> None:
        Logger.base.info(f'🧹 [SWEEPER] Started, interval={self.interval_seconds}s')
        while not self._stop_event.is_set():
            try:
                await self.run_once()
            except Exception as e:
                Logger.base.exception(f'❌ [SWEEPER] Sweep pass failed: {e}')

            with anyio.move_on_after(self.interval_seconds):
                await self._stop_event.wait()
        Logger.base.info('🛑 [SWEEPER] Stopped')

    def stop(self) -> None:
        self._stop_event.set()
