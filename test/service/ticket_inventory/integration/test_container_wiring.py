from datetime import timedelta

from dependency_injector import providers
import pytest

from src.platform.config.di import container
from src.platform.database.orm_db_setting import Database
from src.platform.database.unit_of_work import SqlAlchemyUnitOfWork
from test.service.ticket_inventory.inventory_test_constants import BUYER_ID


@pytest.fixture
def wired_container(session_maker):
    container.database.override(providers.Object(Database(session_maker=session_maker)))
    yield container
    container.database.reset_override()


@pytest.mark.integration
class TestContainerWiring:
    def test_each_use_case_gets_its_own_unit_of_work(self, wired_container):
        first = wired_container.reserve_tickets_use_case()
        second = wired_container.reserve_tickets_use_case()

        assert isinstance(first.uow, SqlAlchemyUnitOfWork)
        assert first.uow is not second.uow

    @pytest.mark.parametrize(
        'provider_name',
        ['validate_ticket_use_case', 'list_orders_use_case', 'list_tickets_use_case'],
    )
    def test_read_side_use_cases_are_wired(self, wired_container, provider_name):
        use_case = getattr(wired_container, provider_name)()

        assert isinstance(use_case.uow, SqlAlchemyUnitOfWork)

    def test_settings_flow_into_use_cases(self, wired_container):
        settings = wired_container.config_service()

        reserve = wired_container.reserve_tickets_use_case()
        sweep = wired_container.sweep_expired_orders_use_case()

        assert reserve.default_ttl == timedelta(minutes=settings.RESERVATION_TTL_MINUTES)
        assert reserve.max_quantity == settings.MAX_TICKETS_PER_RESERVATION
        assert sweep.batch_size == settings.SWEEP_BATCH_SIZE

    async def test_resolved_use_cases_share_the_database(
        self, wired_container, create_ticket_type, now
    ):
        ticket_type = await create_ticket_type(quantity=3)

        await wired_container.reserve_tickets_use_case().execute(
            ticket_type_id=ticket_type.id, quantity=3, user_id=BUYER_ID, now=now
        )
        report = await wired_container.get_ticket_type_availability_use_case().execute(
            ticket_type_id=ticket_type.id, now=now
        )

        assert report.sold_out
        assert report.available == 0
