from datetime import datetime, timedelta

import pytest

from src.service.ticket_inventory.domain.entity.ticket_type_entity import TicketType
from src.service.ticket_inventory.domain.inventory_errors import (
    InsufficientStockError,
    SaleEndedError,
    SaleNotStartedError,
    SaleWindowClosedError,
    ValidationError,
)
from test.service.ticket_inventory.unit.test_helpers import make_ticket_type


def _create(now: datetime, **overrides) -> TicketType:
    fields = {
        'event_id': 7,
        'name': 'VIP',
        'price': 12000,
        'quantity': 50,
        'sale_start': now,
        'sale_end': now + timedelta(hours=1),
    }
    fields.update(overrides)
    return TicketType.create(**fields)


@pytest.mark.unit
class TestTicketTypeCreate:
    def test_create_starts_with_nothing_sold(self, now):
        ticket_type = _create(now, name='  VIP  ')

        assert ticket_type.sold == 0
        assert ticket_type.version == 0
        assert ticket_type.name == 'VIP'
        assert ticket_type.available() == 50

    def test_free_tickets_are_allowed(self, now):
        assert _create(now, price=0).price == 0

    @pytest.mark.parametrize(
        'overrides',
        [
            {'price': -1},
            {'quantity': 0},
            {'name': '   '},
            {'event_id': 0},
        ],
    )
    def test_invalid_fields_are_rejected(self, now, overrides):
        with pytest.raises(ValidationError):
            _create(now, **overrides)

    def test_sale_window_shorter_than_one_hour_is_rejected(self, now):
        with pytest.raises(ValidationError, match='at least one hour'):
            _create(now, sale_end=now + timedelta(minutes=59))

    def test_sale_window_must_be_ordered(self, now):
        with pytest.raises(ValidationError, match='before sale end'):
            _create(now, sale_start=now + timedelta(hours=2), sale_end=now)


@pytest.mark.unit
class TestTicketTypeUpdate:
    def test_quantity_cannot_drop_below_sold(self, now):
        ticket_type = make_ticket_type(now=now, quantity=100, sold=40)

        with pytest.raises(ValidationError, match='40 units already sold'):
            ticket_type.update(quantity=39)

    def test_quantity_can_drop_to_exactly_sold(self, now):
        ticket_type = make_ticket_type(now=now, quantity=100, sold=40)

        updated = ticket_type.update(quantity=40)

        assert updated.quantity == 40
        assert updated.is_sold_out()
        # The original is untouched
        assert ticket_type.quantity == 100

    def test_partial_update_keeps_other_fields(self, now):
        ticket_type = make_ticket_type(now=now, price=2500)

        updated = ticket_type.update(price=3000)

        assert updated.price == 3000
        assert updated.name == ticket_type.name
        assert updated.sale_end == ticket_type.sale_end


@pytest.mark.unit
class TestTicketTypeReservable:
    def test_on_sale_is_half_open(self, now):
        ticket_type = make_ticket_type(now=now)

        assert ticket_type.is_on_sale(ticket_type.sale_start)
        assert not ticket_type.is_on_sale(ticket_type.sale_end)

    def test_exactly_available_is_reservable(self, now):
        ticket_type = make_ticket_type(now=now, quantity=10, sold=7)

        ticket_type.ensure_reservable(quantity=3, now=now)

    def test_one_more_than_available_is_insufficient(self, now):
        ticket_type = make_ticket_type(now=now, quantity=10, sold=7)

        with pytest.raises(InsufficientStockError) as exc_info:
            ticket_type.ensure_reservable(quantity=4, now=now)

        assert exc_info.value.available == 3
        assert exc_info.value.status_code == 409

    def test_before_sale_start(self, now):
        ticket_type = make_ticket_type(now=now)

        with pytest.raises(SaleNotStartedError):
            ticket_type.ensure_reservable(
                quantity=1, now=ticket_type.sale_start - timedelta(seconds=1)
            )

    def test_after_sale_end(self, now):
        ticket_type = make_ticket_type(now=now)

        with pytest.raises(SaleEndedError) as exc_info:
            ticket_type.ensure_reservable(quantity=1, now=ticket_type.sale_end)

        assert isinstance(exc_info.value, SaleWindowClosedError)
