import time
from datetime import datetime, timedelta
from typing import Optional

from opentelemetry import trace

from src.platform.config.core_setting import settings
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import TransientStoreError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.inventory_metrics import inventory_metrics
from src.platform.types.datetime_utils import utc_now
from src.service.ticket_inventory.app.dto.inventory_dto import SweepResult
from src.service.ticket_inventory.app.service.inventory_ledger import InventoryLedger
from src.service.ticket_inventory.app.service.order_lifecycle import OrderLifecycle
from src.service.ticket_inventory.domain.entity.reservation_entity import Reservation
from src.service.ticket_inventory.domain.enum.inventory_status import ReleaseReason


class SweepExpiredOrdersUseCase:
    """
    Expiry Sweeper pass.

    1. Pending orders older than the reservation TTL are cancelled, each in its
       own transaction, through the same conditional update completion uses.
       An order completed in the meantime is skipped.
    2. Held reservations past expires_at that never got an order are released.

    One failing order does not abort the pass; it is reported in
    `failed_order_ids` and picked up again by the next pass.
    """

    def __init__(
        self,
        *,
        uow: AbstractUnitOfWork,
        ttl: Optional[timedelta] = None,
        batch_size: Optional[int] = None,
    ) -> None:
        self.uow = uow
        self.ttl = ttl or timedelta(minutes=settings.RESERVATION_TTL_MINUTES)
        self.batch_size = batch_size or settings.SWEEP_BATCH_SIZE
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(self, *, now: Optional[datetime] = None) -> SweepResult:
        now = now or utc_now()
        started = time.perf_counter()

        with self.tracer.start_as_current_span('use_case.sweep_expired_orders') as span:
            async with self.uow:
                expired_ids = await self.uow.order_repo.list_expired_pending_ids(
                    cutoff=now - self.ttl, limit=self.batch_size
                )

            cancelled_ids: list[int] = []
            failed_ids: list[int] = []
            released_units = 0
            for order_id in expired_ids:
                try:
                    units = await self._expire_order(order_id=order_id, now=now)
                except TransientStoreError as e:
                    Logger.base.warning(f'⚠️ [SWEEP] Order {order_id} skipped: {e.message}')
                    failed_ids.append(order_id)
                    continue
                if units is None:
                    continue
                cancelled_ids.append(order_id)
                released_units += units

            async with self.uow:
                orphans = await self.uow.reservation_repo.list_expired_orphans(
                    now=now, limit=self.batch_size
                )

            released_ids: list[str] = []
            for reservation in orphans:
                try:
                    released = await self._release_orphan(reservation=reservation, now=now)
                except TransientStoreError as e:
                    Logger.base.warning(
                        f'⚠️ [SWEEP] Reservation {reservation.id} skipped: {e.message}'
                    )
                    continue
                if released:
                    released_ids.append(reservation.id)
                    released_units += reservation.quantity

            span.set_attribute('sweep.cancelled_orders', len(cancelled_ids))
            span.set_attribute('sweep.released_reservations', len(released_ids))

        inventory_metrics.sweeper_cancelled_orders.inc(len(cancelled_ids))
        inventory_metrics.sweeper_orphan_releases.inc(len(released_ids))
        inventory_metrics.sweeper_run_duration.observe(time.perf_counter() - started)

        result = SweepResult(
            cancelled_order_ids=cancelled_ids,
            released_reservation_ids=released_ids,
            released_units=released_units,
            failed_order_ids=failed_ids,
        )
        if not result.is_empty:
            Logger.base.info(
                f'🧹 [SWEEP] cancelled {len(cancelled_ids)} orders, '
                f'released {len(released_ids)} orphan holds, {released_units} units back on sale'
            )
        return result

    async def _expire_order(self, *, order_id: int, now: datetime) -> Optional[int]:
        async with self.uow:
            outcome = await OrderLifecycle(self.uow).cancel_pending(
                order_id=order_id, now=now, reason=ReleaseReason.EXPIRED
            )
            if outcome is None:
                return None
            await self.uow.commit()
        return outcome.released_units

    async def _release_orphan(self, *, reservation: Reservation, now: datetime) -> bool:
        async with self.uow:
            released = await InventoryLedger(self.uow).release(
                reservation=reservation,
                now=now,
                reason=ReleaseReason.EXPIRED,
                unbound_only=True,
            )
            if released:
                await self.uow.commit()
        return released
