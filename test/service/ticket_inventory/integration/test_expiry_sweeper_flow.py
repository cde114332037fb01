"""
Integration tests for the Expiry Sweeper

Covers:
1. A pending order past the TTL is cancelled and its units return to sale
2. A second pass finds nothing to do
3. Sweep racing a late completion: exactly one wins
4. Orphan holds (never bound to an order) are reclaimed
5. Availability reads sweep lazily first
"""

import asyncio
from datetime import timedelta

import pytest

from src.service.ticket_inventory.app.command.complete_order_use_case import (
    CompleteOrderUseCase,
)
from src.service.ticket_inventory.app.command.create_order_use_case import CreateOrderUseCase
from src.service.ticket_inventory.app.command.reserve_tickets_use_case import (
    ReserveTicketsUseCase,
)
from src.service.ticket_inventory.app.command.sweep_expired_orders_use_case import (
    SweepExpiredOrdersUseCase,
)
from src.service.ticket_inventory.app.query.get_order_use_case import GetOrderUseCase
from src.service.ticket_inventory.app.query.get_ticket_type_availability_use_case import (
    GetTicketTypeAvailabilityUseCase,
)
from src.service.ticket_inventory.domain.enum.inventory_status import (
    OrderStatus,
    ReservationStatus,
)
from src.service.ticket_inventory.domain.inventory_errors import InvalidStateTransitionError
from src.service.ticket_inventory.domain.value_object.ticket_spec import TicketSpec
from test.service.ticket_inventory.inventory_test_constants import BUYER_ID, EVENT_ID


TTL = timedelta(minutes=15)


@pytest.fixture
def new_sweep(new_uow):
    return lambda: SweepExpiredOrdersUseCase(uow=new_uow(), ttl=TTL, batch_size=100)


async def _checkout(new_uow, *, ticket_type_id: int, quantity: int, now):
    token = await ReserveTicketsUseCase(uow=new_uow()).execute(
        ticket_type_id=ticket_type_id, quantity=quantity, user_id=BUYER_ID, ttl=TTL, now=now
    )
    return await CreateOrderUseCase(uow=new_uow()).execute(
        user_id=BUYER_ID,
        event_id=EVENT_ID,
        reservation_ids=[token.reservation_id],
        billing_email='buyer@example.com',
        billing_name='Ada Buyer',
        now=now,
    )


@pytest.mark.integration
class TestExpirySweep:
    async def test_expired_order_is_cancelled_and_sold_restored(
        self, new_uow, new_sweep, create_ticket_type, get_ticket_type, now
    ):
        """
        Given: an order for 3 units created at T with TTL 15 minutes
        When: the sweeper runs at T+16 minutes with no completion
        Then:
          - the order is cancelled
          - sold goes down by 3
          - a second pass is a no-op
        """
        ticket_type = await create_ticket_type(quantity=10)
        order = await _checkout(new_uow, ticket_type_id=ticket_type.id, quantity=3, now=now)
        assert (await get_ticket_type(ticket_type.id)).sold == 3

        result = await new_sweep().execute(now=now + timedelta(minutes=16))
        again = await new_sweep().execute(now=now + timedelta(minutes=17))

        assert result.cancelled_order_ids == [order.id]
        assert result.released_units == 3
        assert again.is_empty
        detail = await GetOrderUseCase(uow=new_uow()).execute(order_id=order.id)
        assert detail.order.status == OrderStatus.CANCELLED
        assert [r.status for r in detail.reservations] == [ReservationStatus.RELEASED]
        assert (await get_ticket_type(ticket_type.id)).sold == 0

    async def test_order_within_ttl_is_left_alone(
        self, new_uow, new_sweep, create_ticket_type, get_ticket_type, now
    ):
        ticket_type = await create_ticket_type(quantity=10)
        await _checkout(new_uow, ticket_type_id=ticket_type.id, quantity=2, now=now)

        result = await new_sweep().execute(now=now + timedelta(minutes=14))

        assert result.is_empty
        assert (await get_ticket_type(ticket_type.id)).sold == 2

    async def test_completed_order_is_never_swept(
        self, new_uow, new_sweep, create_ticket_type, get_ticket_type, now
    ):
        ticket_type = await create_ticket_type(quantity=10)
        order = await _checkout(new_uow, ticket_type_id=ticket_type.id, quantity=2, now=now)
        await CompleteOrderUseCase(uow=new_uow()).execute(
            order_id=order.id,
            payment_reference='pay_1',
            ticket_specs=[TicketSpec(ticket_type_id=ticket_type.id)] * 2,
            now=now + timedelta(minutes=5),
        )

        result = await new_sweep().execute(now=now + timedelta(hours=1))

        assert result.is_empty
        assert (await get_ticket_type(ticket_type.id)).sold == 2

    async def test_sweep_racing_late_completion_has_one_winner(
        self, new_uow, new_sweep, create_ticket_type, get_ticket_type, now
    ):
        """
        Given: an expired pending order for 2 units
        When: the sweeper and a late completion run concurrently
        Then: exactly one of them takes effect, and sold matches the winner
        """
        ticket_type = await create_ticket_type(quantity=10)
        order = await _checkout(new_uow, ticket_type_id=ticket_type.id, quantity=2, now=now)
        late = now + timedelta(minutes=16)

        sweep_result, complete_result = await asyncio.gather(
            new_sweep().execute(now=late),
            CompleteOrderUseCase(uow=new_uow()).execute(
                order_id=order.id,
                payment_reference='pay_late',
                ticket_specs=[TicketSpec(ticket_type_id=ticket_type.id)] * 2,
                now=late,
            ),
            return_exceptions=True,
        )

        detail = await GetOrderUseCase(uow=new_uow()).execute(order_id=order.id)
        sold = (await get_ticket_type(ticket_type.id)).sold
        if detail.order.status == OrderStatus.COMPLETED:
            assert sweep_result.cancelled_order_ids == []
            assert len(detail.tickets) == 2
            assert sold == 2
        else:
            assert detail.order.status == OrderStatus.CANCELLED
            assert sweep_result.cancelled_order_ids == [order.id]
            assert isinstance(complete_result, InvalidStateTransitionError)
            assert detail.tickets == []
            assert sold == 0

    async def test_orphan_hold_is_released(
        self, new_uow, new_sweep, create_ticket_type, get_ticket_type, now
    ):
        ticket_type = await create_ticket_type(quantity=10)
        token = await ReserveTicketsUseCase(uow=new_uow()).execute(
            ticket_type_id=ticket_type.id, quantity=4, user_id=BUYER_ID, ttl=TTL, now=now
        )

        early = await new_sweep().execute(now=now + timedelta(minutes=10))
        result = await new_sweep().execute(now=token.expires_at)

        assert early.is_empty
        assert result.released_reservation_ids == [token.reservation_id]
        assert (await get_ticket_type(ticket_type.id)).sold == 0


@pytest.mark.integration
class TestLazySweepOnRead:
    async def test_availability_read_reclaims_abandoned_holds(
        self, new_uow, new_sweep, create_ticket_type, now
    ):
        ticket_type = await create_ticket_type(quantity=10)
        await _checkout(new_uow, ticket_type_id=ticket_type.id, quantity=10, now=now)
        lazy = GetTicketTypeAvailabilityUseCase(
            uow=new_uow(), sweep_use_case=new_sweep(), lazy_sweep=True
        )
        eager_only = GetTicketTypeAvailabilityUseCase(uow=new_uow(), lazy_sweep=False)

        before = await eager_only.execute(ticket_type_id=ticket_type.id, now=now)
        stale = await eager_only.execute(
            ticket_type_id=ticket_type.id, now=now + timedelta(minutes=16)
        )
        after = await lazy.execute(ticket_type_id=ticket_type.id, now=now + timedelta(minutes=16))
        listed = await lazy.list_by_event(event_id=EVENT_ID, now=now + timedelta(minutes=16))

        assert before.sold_out
        # Without a sweep an expired hold still counts as sold
        assert stale.available == 0
        assert after.available == 10
        assert after.on_sale
        assert [report.ticket_type_id for report in listed] == [ticket_type.id]
