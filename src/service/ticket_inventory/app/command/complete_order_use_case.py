from datetime import datetime
from typing import Optional

from opentelemetry import trace

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.inventory_metrics import inventory_metrics
from src.platform.types.datetime_utils import utc_now
from src.service.ticket_inventory.app.dto.inventory_dto import FulfillmentResult
from src.service.ticket_inventory.app.service.inventory_ledger import InventoryLedger
from src.service.ticket_inventory.domain.entity.ticket_entity import Ticket
from src.service.ticket_inventory.domain.enum.inventory_status import (
    OrderStatus,
    ReservationStatus,
)
from src.service.ticket_inventory.domain.inventory_errors import (
    DoubleFulfillmentError,
    InvalidStateTransitionError,
    ValidationError,
)
from src.service.ticket_inventory.domain.value_object.ticket_spec import (
    TicketSpec,
    count_by_ticket_type,
    validate_ticket_specs,
)


class CompleteOrderUseCase:
    """
    Fulfillment Transaction: finalize a paid order and mint its tickets.

    Flow (one transaction, all or nothing):
    1. UPDATE orders SET status = completed, payment_id = :ref
       WHERE id = :id AND status = pending
    2. Row matched: check ticket specs against the order's held reservations,
       consume the reservations, insert one active ticket per spec, commit
    3. Row not matched: re-read the order
       - completed with the same payment reference -> idempotent success, no new tickets
       - completed with another reference -> DoubleFulfillmentError
       - cancelled / refunded -> InvalidStateTransitionError

    The conditional update in step 1 is shared with cancellation and the expiry
    sweeper, so a late completion racing a sweep resolves to exactly one winner.
    """

    def __init__(self, *, uow: AbstractUnitOfWork) -> None:
        self.uow = uow
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(
        self,
        *,
        order_id: int,
        payment_reference: str,
        ticket_specs: list[TicketSpec],
        now: Optional[datetime] = None,
    ) -> FulfillmentResult:
        if not payment_reference or not payment_reference.strip():
            raise ValidationError('Payment reference is required')
        validate_ticket_specs(ticket_specs)

        with self.tracer.start_as_current_span(
            'use_case.complete_order',
            attributes={'order.id': order_id, 'order.ticket_count': len(ticket_specs)},
        ):
            async with self.uow:
                now = now or utc_now()
                completed = await self.uow.order_repo.transition_status(
                    order_id=order_id,
                    expected=OrderStatus.PENDING,
                    target=OrderStatus.COMPLETED,
                    now=now,
                    payment_id=payment_reference,
                )
                if completed is None:
                    return await self._resolve_not_pending(
                        order_id=order_id, payment_reference=payment_reference
                    )

                held = await self.uow.reservation_repo.list_by_order(
                    order_id=order_id, status=ReservationStatus.HELD
                )
                reserved_units: dict[int, int] = {}
                for reservation in held:
                    reserved_units[reservation.ticket_type_id] = (
                        reserved_units.get(reservation.ticket_type_id, 0) + reservation.quantity
                    )
                requested_units = dict(count_by_ticket_type(ticket_specs))
                if requested_units != reserved_units:
                    inventory_metrics.record_fulfillment(result='rejected')
                    raise ValidationError(
                        f'Ticket specs do not match the units reserved for order {order_id}: '
                        f'reserved {reserved_units}, requested {requested_units}'
                    )

                await InventoryLedger(self.uow).consume_for_order(order_id=order_id, now=now)
                tickets = await self.uow.ticket_repo.create_many(
                    tickets=[
                        Ticket.mint(order_id=order_id, spec=spec, now=now) for spec in ticket_specs
                    ]
                )
                await self.uow.commit()

        inventory_metrics.record_fulfillment(result='completed', tickets=len(tickets))
        Logger.base.info(
            f'✅ [FULFILL] Order {completed.order_number} completed, {len(tickets)} tickets issued'
        )
        return FulfillmentResult(order=completed, tickets=tickets, already_fulfilled=False)

    async def _resolve_not_pending(
        self, *, order_id: int, payment_reference: str
    ) -> FulfillmentResult:
        order = await self.uow.order_repo.get_by_id(order_id=order_id)
        if order is None:
            raise NotFoundError(f'Order {order_id} not found')

        if order.status == OrderStatus.COMPLETED:
            if order.payment_id == payment_reference:
                tickets = await self.uow.ticket_repo.list_by_order(order_id=order_id)
                inventory_metrics.record_fulfillment(result='idempotent')
                Logger.base.info(
                    f'♻️ [FULFILL] Order {order.order_number} already completed with this reference'
                )
                return FulfillmentResult(order=order, tickets=tickets, already_fulfilled=True)
            inventory_metrics.record_fulfillment(result='conflict')
            raise DoubleFulfillmentError(
                order_id=order_id,
                recorded_reference=order.payment_id,
                attempted_reference=payment_reference,
            )

        inventory_metrics.record_fulfillment(result='conflict')
        raise InvalidStateTransitionError(
            entity='order', current=order.status, target=OrderStatus.COMPLETED
        )
