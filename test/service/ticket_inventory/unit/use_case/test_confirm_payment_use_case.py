from unittest.mock import AsyncMock

import pytest

from src.service.ticket_inventory.app.command.confirm_payment_use_case import (
    ConfirmPaymentUseCase,
)
from src.service.ticket_inventory.app.dto.inventory_dto import FulfillmentResult
from src.service.ticket_inventory.domain.enum.inventory_status import OrderStatus
from src.service.ticket_inventory.domain.inventory_errors import InvalidStateTransitionError
from src.service.ticket_inventory.domain.value_object.ticket_spec import TicketSpec
from test.service.ticket_inventory.unit.test_helpers import (
    FakeUnitOfWork,
    make_order,
    make_reservation,
)


@pytest.fixture
def uow():
    uow = FakeUnitOfWork()
    uow.reservation_repo.transition_status.return_value = True
    return uow


@pytest.fixture
def complete_order_use_case():
    return AsyncMock()


@pytest.mark.unit
class TestConfirmPayment:
    async def test_success_fulfills_one_ticket_per_reserved_unit(
        self, uow, complete_order_use_case, now
    ):
        completed = make_order(now=now, status=OrderStatus.COMPLETED, payment_id='pay_1')
        uow.order_repo.get_by_id.return_value = make_order(now=now)
        uow.reservation_repo.list_by_order.return_value = [
            make_reservation(now=now, id='res-1', ticket_type_id=1, quantity=2, order_id=10),
            make_reservation(now=now, id='res-2', ticket_type_id=3, quantity=1, order_id=10),
        ]
        complete_order_use_case.execute.return_value = FulfillmentResult(
            order=completed, tickets=[]
        )
        use_case = ConfirmPaymentUseCase(uow=uow, complete_order_use_case=complete_order_use_case)

        order = await use_case.execute(order_id=10, reference='pay_1', success=True, now=now)

        assert order is completed
        complete_order_use_case.execute.assert_awaited_once_with(
            order_id=10,
            payment_reference='pay_1',
            ticket_specs=[
                TicketSpec(ticket_type_id=1),
                TicketSpec(ticket_type_id=1),
                TicketSpec(ticket_type_id=3),
            ],
            now=now,
        )

    async def test_failure_cancels_the_pending_order(self, uow, complete_order_use_case, now):
        cancelled = make_order(now=now, status=OrderStatus.CANCELLED)
        uow.order_repo.transition_status.return_value = cancelled
        uow.reservation_repo.list_by_order.return_value = [
            make_reservation(now=now, quantity=2, order_id=10)
        ]
        use_case = ConfirmPaymentUseCase(uow=uow, complete_order_use_case=complete_order_use_case)

        order = await use_case.execute(order_id=10, reference='pay_1', success=False, now=now)

        assert order.status == OrderStatus.CANCELLED
        uow.ticket_type_repo.adjust_inventory.assert_awaited_once_with(ticket_type_id=1, delta=-2)
        complete_order_use_case.execute.assert_not_awaited()
        assert uow.committed

    async def test_repeated_failure_callback_is_a_noop(self, uow, complete_order_use_case, now):
        uow.order_repo.transition_status.return_value = None
        uow.order_repo.get_by_id.return_value = make_order(now=now, status=OrderStatus.CANCELLED)
        use_case = ConfirmPaymentUseCase(uow=uow, complete_order_use_case=complete_order_use_case)

        order = await use_case.execute(order_id=10, reference='pay_1', success=False, now=now)

        assert order.status == OrderStatus.CANCELLED
        uow.ticket_type_repo.adjust_inventory.assert_not_awaited()
        assert not uow.committed

    async def test_failure_callback_for_completed_order_is_a_conflict(
        self, uow, complete_order_use_case, now
    ):
        uow.order_repo.transition_status.return_value = None
        uow.order_repo.get_by_id.return_value = make_order(
            now=now, status=OrderStatus.COMPLETED, payment_id='pay_1'
        )
        use_case = ConfirmPaymentUseCase(uow=uow, complete_order_use_case=complete_order_use_case)

        with pytest.raises(InvalidStateTransitionError):
            await use_case.execute(order_id=10, reference='pay_1', success=False, now=now)
