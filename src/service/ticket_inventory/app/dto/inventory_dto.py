from datetime import datetime

import attrs

from src.service.ticket_inventory.domain.entity.order_entity import Order
from src.service.ticket_inventory.domain.entity.reservation_entity import Reservation
from src.service.ticket_inventory.domain.entity.ticket_entity import Ticket
from src.service.ticket_inventory.domain.entity.ticket_type_entity import TicketType


@attrs.frozen
class AvailabilityReport:
    ticket_type_id: int
    quantity: int
    sold: int
    available: int
    on_sale: bool
    sold_out: bool
    sale_start: datetime
    sale_end: datetime

    @classmethod
    def from_ticket_type(cls, ticket_type: TicketType, *, now: datetime) -> 'AvailabilityReport':
        assert ticket_type.id is not None
        return cls(
            ticket_type_id=ticket_type.id,
            quantity=ticket_type.quantity,
            sold=ticket_type.sold,
            available=ticket_type.available(),
            on_sale=ticket_type.is_on_sale(now),
            sold_out=ticket_type.is_sold_out(),
            sale_start=ticket_type.sale_start,
            sale_end=ticket_type.sale_end,
        )


@attrs.frozen
class FulfillmentResult:
    order: Order
    tickets: list[Ticket]
    already_fulfilled: bool = False


@attrs.frozen
class SweepResult:
    cancelled_order_ids: list[int] = attrs.field(factory=list)
    released_reservation_ids: list[str] = attrs.field(factory=list)
    released_units: int = 0
    failed_order_ids: list[int] = attrs.field(factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.cancelled_order_ids or self.released_reservation_ids)


@attrs.frozen
class OrderDetail:
    order: Order
    tickets: list[Ticket]
    reservations: list[Reservation]
