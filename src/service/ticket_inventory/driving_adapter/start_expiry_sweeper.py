"""
Standalone Expiry Sweeper Entry Point

Usage:
    PYTHONPATH=$PWD python src/service/ticket_inventory/driving_adapter/start_expiry_sweeper.py

Creates the inventory tables if missing, then sweeps expired orders and holds
every SWEEP_INTERVAL_SECONDS until SIGINT/SIGTERM.
"""

import signal

import anyio

from src.platform.config.di import container
from src.platform.database.orm_db_setting import create_db_and_tables, dispose_engine, get_engine
from src.platform.logging.loguru_io import Logger
from src.platform.observability.tracing import TracingConfig
from src.service.ticket_inventory.driving_adapter.expiry_sweeper import ExpirySweeper


async def main() -> None:
    Logger.base.info('🚀 [Expiry Sweeper] Starting...')

    tracing = TracingConfig(service_name='ticket-inventory-sweeper')
    tracing.setup()
    tracing.instrument_sqlalchemy(engine=get_engine())
    Logger.base.info('📊 [Expiry Sweeper] OpenTelemetry configured')

    await create_db_and_tables()

    sweeper = ExpirySweeper(
        use_case_factory=container.sweep_expired_orders_use_case,
        interval_seconds=container.config_service().SWEEP_INTERVAL_SECONDS,
    )

    try:
        with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:

            async def signal_watcher() -> None:
                async for signum in signals:
                    Logger.base.info(f'🛑 [Expiry Sweeper] Received signal {signum}')
                    sweeper.stop()
                    break

            async with anyio.create_task_group() as tg:
                tg.start_soon(signal_watcher)
                await sweeper.run()
                tg.cancel_scope.cancel()
    finally:
        await dispose_engine()
        tracing.shutdown()
        Logger.base.info('👋 [Expiry Sweeper] Shutdown complete')


if __name__ == '__main__':
    anyio.run(main)
