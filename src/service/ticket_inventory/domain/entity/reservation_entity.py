from datetime import datetime, timedelta
from typing import Optional

import attrs
import uuid_utils

from src.service.ticket_inventory.domain.enum.inventory_status import ReservationStatus
from src.service.ticket_inventory.domain.inventory_errors import ValidationError
from src.service.ticket_inventory.domain.value_object.reservation_token import ReservationToken


@attrs.define
class Reservation:
    """
    A held claim on `quantity` units of one ticket type.

    held -> released   (explicit release, order cancelled, expired)
    held -> consumed   (order fulfilled, units became tickets)

    `order_id` is set once the hold is bound to a checkout order; from then on
    the order's lifecycle decides its fate.
    """

    id: str
    ticket_type_id: int
    owner_id: int
    quantity: int
    expires_at: datetime
    status: ReservationStatus = ReservationStatus.HELD
    order_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def create(
        cls,
        *,
        ticket_type_id: int,
        owner_id: int,
        quantity: int,
        ttl: timedelta,
        now: datetime,
        max_quantity: int,
    ) -> 'Reservation':
        validate_reservation_request(quantity=quantity, ttl=ttl, max_quantity=max_quantity)
        return cls(
            id=str(uuid_utils.uuid7()),
            ticket_type_id=ticket_type_id,
            owner_id=owner_id,
            quantity=quantity,
            expires_at=now + ttl,
            status=ReservationStatus.HELD,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_held(self) -> bool:
        return self.status == ReservationStatus.HELD

    def is_expired(self, now: datetime) -> bool:
        return self.is_held and now >= self.expires_at

    def to_token(self) -> ReservationToken:
        return ReservationToken(
            reservation_id=self.id,
            ticket_type_id=self.ticket_type_id,
            owner_id=self.owner_id,
            quantity=self.quantity,
            expires_at=self.expires_at,
        )


def validate_reservation_request(*, quantity: int, ttl: timedelta, max_quantity: int) -> None:
    if quantity < 1:
        raise ValidationError('Reservation quantity must be at least 1')
    if quantity > max_quantity:
        raise ValidationError(f'Cannot reserve more than {max_quantity} tickets at once')
    if ttl <= timedelta(0):
        raise ValidationError('Reservation TTL must be positive')
