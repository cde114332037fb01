"""
Integration tests for checkout: reserve -> order -> pay -> complete

Covers:
1. Order total and ticket minting (two units at 3750 -> 7500, two active tickets)
2. completeOrder idempotence and double fulfillment
3. Payment initiate / confirm through the mock gateway
4. Refund and check-in of issued tickets
"""

import pytest

from src.platform.exception.exceptions import DomainError
from src.service.ticket_inventory.app.command.complete_order_use_case import (
    CompleteOrderUseCase,
)
from src.service.ticket_inventory.app.command.confirm_payment_use_case import (
    ConfirmPaymentUseCase,
)
from src.service.ticket_inventory.app.command.create_order_use_case import CreateOrderUseCase
from src.service.ticket_inventory.app.command.delete_order_use_case import DeleteOrderUseCase
from src.service.ticket_inventory.app.command.initiate_payment_use_case import (
    InitiatePaymentUseCase,
)
from src.service.ticket_inventory.app.command.redeem_ticket_use_case import RedeemTicketUseCase
from src.service.ticket_inventory.app.command.refund_order_use_case import RefundOrderUseCase
from src.service.ticket_inventory.app.command.reserve_tickets_use_case import (
    ReserveTicketsUseCase,
)
from src.service.ticket_inventory.app.query.get_order_use_case import GetOrderUseCase
from src.service.ticket_inventory.domain.enum.inventory_status import (
    OrderStatus,
    ReservationStatus,
    TicketStatus,
)
from src.service.ticket_inventory.domain.inventory_errors import (
    DoubleFulfillmentError,
    InvalidStateTransitionError,
    ReservationStateError,
    ValidationError,
)
from src.service.ticket_inventory.domain.value_object.ticket_spec import TicketSpec
from src.service.ticket_inventory.driven_adapter.payment.mock_payment_gateway_impl import (
    MockPaymentGatewayImpl,
)
from test.service.ticket_inventory.inventory_test_constants import BUYER_ID, EVENT_ID


@pytest.fixture
async def pending_order(new_uow, create_ticket_type, now):
    """Two units of a 3750 ticket type, held and bound to a pending order"""
    ticket_type = await create_ticket_type(quantity=10, price=3750)
    token = await ReserveTicketsUseCase(uow=new_uow()).execute(
        ticket_type_id=ticket_type.id, quantity=2, user_id=BUYER_ID, now=now
    )
    order = await CreateOrderUseCase(uow=new_uow()).execute(
        user_id=BUYER_ID,
        event_id=EVENT_ID,
        reservation_ids=[token.reservation_id],
        billing_email='buyer@example.com',
        billing_name='Ada Buyer',
        now=now,
    )
    return order, ticket_type


def _specs(ticket_type_id: int, count: int) -> list[TicketSpec]:
    return [TicketSpec(ticket_type_id=ticket_type_id) for _ in range(count)]


@pytest.mark.integration
class TestCompleteOrder:
    async def test_complete_order_mints_active_tickets(
        self, new_uow, pending_order, get_ticket_type, now
    ):
        """
        Given: a pending order with total 7500 for two reserved units
        When: completeOrder with two ticket specs
        Then:
          - the order is completed with the payment reference
          - two active tickets with distinct QR codes exist
          - the holds are consumed and sold stays at 2
        """
        order, ticket_type = pending_order
        assert order.status == OrderStatus.PENDING
        assert order.total_amount == 7500

        result = await CompleteOrderUseCase(uow=new_uow()).execute(
            order_id=order.id,
            payment_reference='pay_1',
            ticket_specs=_specs(ticket_type.id, 2),
            now=now,
        )

        assert result.order.status == OrderStatus.COMPLETED
        assert result.order.payment_id == 'pay_1'
        detail = await GetOrderUseCase(uow=new_uow()).execute(order_id=order.id, user_id=BUYER_ID)
        assert len(detail.tickets) == 2
        assert all(t.status == TicketStatus.ACTIVE for t in detail.tickets)
        assert len({t.qr_code for t in detail.tickets}) == 2
        assert [r.status for r in detail.reservations] == [ReservationStatus.CONSUMED]
        assert (await get_ticket_type(ticket_type.id)).sold == 2

    async def test_complete_twice_with_same_reference_mints_once(
        self, new_uow, pending_order, now
    ):
        order, ticket_type = pending_order
        complete = CompleteOrderUseCase(uow=new_uow())

        first = await complete.execute(
            order_id=order.id,
            payment_reference='pay_1',
            ticket_specs=_specs(ticket_type.id, 2),
            now=now,
        )
        second = await complete.execute(
            order_id=order.id,
            payment_reference='pay_1',
            ticket_specs=_specs(ticket_type.id, 2),
            now=now,
        )

        assert second.already_fulfilled
        assert {t.id for t in second.tickets} == {t.id for t in first.tickets}
        detail = await GetOrderUseCase(uow=new_uow()).execute(order_id=order.id)
        assert len(detail.tickets) == 2

    async def test_complete_with_another_reference_is_a_conflict(
        self, new_uow, pending_order, now
    ):
        order, ticket_type = pending_order
        complete = CompleteOrderUseCase(uow=new_uow())
        await complete.execute(
            order_id=order.id,
            payment_reference='pay_1',
            ticket_specs=_specs(ticket_type.id, 2),
            now=now,
        )

        with pytest.raises(DoubleFulfillmentError):
            await complete.execute(
                order_id=order.id,
                payment_reference='pay_2',
                ticket_specs=_specs(ticket_type.id, 2),
                now=now,
            )

    async def test_mismatched_specs_roll_back_everything(self, new_uow, pending_order, now):
        order, ticket_type = pending_order

        with pytest.raises(ValidationError):
            await CompleteOrderUseCase(uow=new_uow()).execute(
                order_id=order.id,
                payment_reference='pay_1',
                ticket_specs=_specs(ticket_type.id, 3),
                now=now,
            )

        detail = await GetOrderUseCase(uow=new_uow()).execute(order_id=order.id)
        assert detail.order.status == OrderStatus.PENDING
        assert detail.order.payment_id is None
        assert detail.tickets == []
        assert [r.status for r in detail.reservations] == [ReservationStatus.HELD]


@pytest.mark.integration
class TestPaymentFlow:
    async def test_initiate_then_confirm_success(self, new_uow, pending_order, now):
        order, _ = pending_order
        gateway = MockPaymentGatewayImpl(redirect_base_url='https://pay.test/checkout')

        session = await InitiatePaymentUseCase(uow=new_uow(), payment_gateway=gateway).execute(
            order_id=order.id, user_id=BUYER_ID
        )
        confirm = ConfirmPaymentUseCase(
            uow=new_uow(), complete_order_use_case=CompleteOrderUseCase(uow=new_uow())
        )
        completed = await confirm.execute(
            order_id=order.id, reference=session.reference, success=True, now=now
        )
        # Duplicate callback
        replayed = await confirm.execute(
            order_id=order.id, reference=session.reference, success=True, now=now
        )

        assert session.redirect_url.startswith('https://pay.test/checkout?order_id=')
        assert completed.status == OrderStatus.COMPLETED
        assert replayed.payment_id == session.reference
        detail = await GetOrderUseCase(uow=new_uow()).execute(order_id=order.id)
        assert len(detail.tickets) == 2

    async def test_confirm_failure_cancels_and_releases(
        self, new_uow, pending_order, get_ticket_type, now
    ):
        order, ticket_type = pending_order
        confirm = ConfirmPaymentUseCase(
            uow=new_uow(), complete_order_use_case=CompleteOrderUseCase(uow=new_uow())
        )

        cancelled = await confirm.execute(
            order_id=order.id, reference='mock_pay_x', success=False, now=now
        )

        assert cancelled.status == OrderStatus.CANCELLED
        assert (await get_ticket_type(ticket_type.id)).sold == 0
        with pytest.raises(InvalidStateTransitionError):
            await confirm.execute(order_id=order.id, reference='mock_pay_x', success=True, now=now)


@pytest.mark.integration
class TestOrderLifecycle:
    async def test_reservation_cannot_join_two_orders(self, new_uow, create_ticket_type, now):
        ticket_type = await create_ticket_type(quantity=10)
        token = await ReserveTicketsUseCase(uow=new_uow()).execute(
            ticket_type_id=ticket_type.id, quantity=1, user_id=BUYER_ID, now=now
        )
        create_order = CreateOrderUseCase(uow=new_uow())
        fields = {
            'user_id': BUYER_ID,
            'event_id': EVENT_ID,
            'reservation_ids': [token.reservation_id],
            'billing_email': 'buyer@example.com',
            'billing_name': 'Ada Buyer',
            'now': now,
        }

        await create_order.execute(**fields)
        with pytest.raises(ReservationStateError):
            await create_order.execute(**fields)

    async def test_redeem_then_refund_is_blocked(self, new_uow, pending_order, now):
        order, ticket_type = pending_order
        result = await CompleteOrderUseCase(uow=new_uow()).execute(
            order_id=order.id,
            payment_reference='pay_1',
            ticket_specs=_specs(ticket_type.id, 2),
            now=now,
        )
        redeem = RedeemTicketUseCase(uow=new_uow())

        used = await redeem.execute(qr_code=result.tickets[0].qr_code, event_id=EVENT_ID, now=now)
        with pytest.raises(InvalidStateTransitionError):
            await redeem.execute(qr_code=result.tickets[0].qr_code, event_id=EVENT_ID, now=now)
        with pytest.raises(ValidationError):
            await redeem.execute(qr_code=result.tickets[1].qr_code, event_id=EVENT_ID + 1, now=now)
        with pytest.raises(DomainError):
            await RefundOrderUseCase(uow=new_uow()).execute(
                order_id=order.id, user_id=BUYER_ID, now=now
            )

        assert used.status == TicketStatus.USED
        assert used.used_at is not None

    async def test_refund_keeps_units_out_of_sale(
        self, new_uow, pending_order, get_ticket_type, now
    ):
        order, ticket_type = pending_order
        await CompleteOrderUseCase(uow=new_uow()).execute(
            order_id=order.id,
            payment_reference='pay_1',
            ticket_specs=_specs(ticket_type.id, 2),
            now=now,
        )

        refunded = await RefundOrderUseCase(uow=new_uow()).execute(
            order_id=order.id, user_id=BUYER_ID, now=now
        )

        assert refunded.status == OrderStatus.REFUNDED
        detail = await GetOrderUseCase(uow=new_uow()).execute(order_id=order.id)
        assert all(t.status == TicketStatus.REFUNDED for t in detail.tickets)
        assert (await get_ticket_type(ticket_type.id)).sold == 2

    async def test_pending_order_is_deleted_and_its_holds_released(
        self, new_uow, pending_order, get_ticket_type, now
    ):
        order, ticket_type = pending_order

        await DeleteOrderUseCase(uow=new_uow()).execute(
            order_id=order.id, user_id=BUYER_ID, now=now
        )

        uow = new_uow()
        async with uow:
            assert await uow.order_repo.get_by_id(order_id=order.id) is None
        assert (await get_ticket_type(ticket_type.id)).sold == 0
