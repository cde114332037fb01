from datetime import timedelta

import pytest

from src.service.ticket_inventory.domain.entity.reservation_entity import Reservation
from src.service.ticket_inventory.domain.entity.ticket_entity import Ticket
from src.service.ticket_inventory.domain.enum.inventory_status import (
    ReservationStatus,
    TicketStatus,
)
from src.service.ticket_inventory.domain.inventory_errors import ValidationError
from src.service.ticket_inventory.domain.value_object.ticket_spec import (
    TicketSpec,
    count_by_ticket_type,
    validate_ticket_specs,
)
from test.service.ticket_inventory.unit.test_helpers import make_reservation


@pytest.mark.unit
class TestReservation:
    def test_create_holds_until_now_plus_ttl(self, now):
        reservation = Reservation.create(
            ticket_type_id=1,
            owner_id=42,
            quantity=3,
            ttl=timedelta(minutes=15),
            now=now,
            max_quantity=10,
        )

        assert reservation.status == ReservationStatus.HELD
        assert reservation.expires_at == now + timedelta(minutes=15)
        assert reservation.order_id is None
        assert len(reservation.id) == 36

    @pytest.mark.parametrize(
        'quantity,ttl',
        [(0, timedelta(minutes=1)), (11, timedelta(minutes=1)), (1, timedelta(0))],
    )
    def test_invalid_request_is_rejected(self, now, quantity, ttl):
        with pytest.raises(ValidationError):
            Reservation.create(
                ticket_type_id=1, owner_id=42, quantity=quantity, ttl=ttl, now=now, max_quantity=10
            )

    def test_expiry_is_inclusive_of_expires_at(self, now):
        reservation = make_reservation(now=now, expires_in=timedelta(minutes=15))

        assert not reservation.is_expired(now + timedelta(minutes=14))
        assert reservation.is_expired(now + timedelta(minutes=15))

    def test_released_reservation_never_expires(self, now):
        reservation = make_reservation(now=now, status=ReservationStatus.RELEASED)

        assert not reservation.is_expired(now + timedelta(days=1))

    def test_token_carries_quantity_and_expiry(self, now):
        reservation = make_reservation(now=now, quantity=4)

        token = reservation.to_token()

        assert token.reservation_id == reservation.id
        assert token.quantity == 4
        assert token.expires_at == reservation.expires_at


@pytest.mark.unit
class TestTicketSpecs:
    def test_count_by_ticket_type(self):
        specs = [
            TicketSpec(ticket_type_id=1),
            TicketSpec(ticket_type_id=2),
            TicketSpec(ticket_type_id=1),
        ]

        assert count_by_ticket_type(specs) == {1: 2, 2: 1}

    def test_empty_specs_are_rejected(self):
        with pytest.raises(ValidationError):
            validate_ticket_specs([])

    def test_minted_tickets_have_distinct_opaque_codes(self, now):
        spec = TicketSpec(ticket_type_id=1, holder_name='Ada')

        tickets = [Ticket.mint(order_id=10, spec=spec, now=now) for _ in range(50)]

        assert len({t.qr_code for t in tickets}) == 50
        assert all(t.status == TicketStatus.ACTIVE for t in tickets)
        assert all(t.qr_code.startswith('TKT-') and len(t.qr_code) > 40 for t in tickets)
