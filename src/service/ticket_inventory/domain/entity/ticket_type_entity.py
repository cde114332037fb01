from datetime import datetime
from typing import Optional

import attrs

from src.platform.logging.loguru_io import Logger
from src.platform.types.datetime_utils import utc_now
from src.service.ticket_inventory.domain.inventory_errors import (
    InsufficientStockError,
    SaleEndedError,
    SaleNotStartedError,
    ValidationError,
)
from src.service.ticket_inventory.domain.value_object.sale_window import SaleWindow


MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 1000
MAX_PRICE = 1_000_000  # minor units
MAX_QUANTITY = 100_000


def _validate_name(name: str) -> None:
    if not name or not name.strip():
        raise ValidationError('Ticket type name is required')
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f'Ticket type name must be {MAX_NAME_LENGTH} characters or less')


def _validate_description(description: str) -> None:
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(f'Description must be {MAX_DESCRIPTION_LENGTH} characters or less')


def _validate_price(price: int) -> None:
    if price < 0:
        raise ValidationError('Price cannot be negative')
    if price > MAX_PRICE:
        raise ValidationError(f'Price cannot exceed {MAX_PRICE}')


def _validate_quantity(quantity: int) -> None:
    if quantity < 1:
        raise ValidationError('Quantity must be at least 1')
    if quantity > MAX_QUANTITY:
        raise ValidationError(f'Quantity cannot exceed {MAX_QUANTITY}')


@attrs.define
class TicketType:
    """
    A sellable ticket class of one event.

    `sold` counts every unit taken out of sale: held by a reservation or issued
    as a ticket. It is never written through this entity; the store changes it
    only through ITicketTypeRepo.adjust_inventory. `version` moves with every
    adjustment and backs the compare-and-swap path.
    """

    event_id: int
    name: str
    price: int
    quantity: int
    sale_start: datetime
    sale_end: datetime
    description: str = ''
    sold: int = 0
    version: int = 0
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    @Logger.io
    def create(
        cls,
        *,
        event_id: int,
        name: str,
        price: int,
        quantity: int,
        sale_start: datetime,
        sale_end: datetime,
        description: str = '',
    ) -> 'TicketType':
        if event_id <= 0:
            raise ValidationError('Invalid event id')
        _validate_name(name)
        _validate_description(description)
        _validate_price(price)
        _validate_quantity(quantity)
        window = SaleWindow(start=sale_start, end=sale_end)

        now = utc_now()
        return cls(
            event_id=event_id,
            name=name.strip(),
            description=description,
            price=price,
            quantity=quantity,
            sale_start=window.start,
            sale_end=window.end,
            sold=0,
            version=0,
            created_at=now,
            updated_at=now,
        )

    @property
    def sale_window(self) -> SaleWindow:
        return SaleWindow(start=self.sale_start, end=self.sale_end)

    def available(self) -> int:
        return self.quantity - self.sold

    def is_sold_out(self) -> bool:
        return self.available() <= 0

    def is_on_sale(self, now: Optional[datetime] = None) -> bool:
        return self.sale_window.contains(now or utc_now())

    def can_update_quantity(self, new_quantity: int) -> bool:
        return new_quantity >= self.sold

    def ensure_reservable(self, *, quantity: int, now: datetime) -> None:
        """
        Raises:
            SaleNotStartedError / SaleEndedError: outside the sale window
            InsufficientStockError: fewer than `quantity` units left
        """
        assert self.id is not None
        window = self.sale_window
        if not window.has_started(now):
            raise SaleNotStartedError(ticket_type_id=self.id)
        if window.has_ended(now):
            raise SaleEndedError(ticket_type_id=self.id)
        if self.available() < quantity:
            raise InsufficientStockError(
                ticket_type_id=self.id, requested=quantity, available=self.available()
            )

    @Logger.io
    def update(
        self,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        price: Optional[int] = None,
        quantity: Optional[int] = None,
        sale_start: Optional[datetime] = None,
        sale_end: Optional[datetime] = None,
    ) -> 'TicketType':
        """
        Apply a partial update; unspecified fields keep their value.

        Raises:
            ValidationError: invalid field, or quantity below the current sold count
        """
        if name is not None:
            _validate_name(name)
            name = name.strip()
        if description is not None:
            _validate_description(description)
        if price is not None:
            _validate_price(price)
        if quantity is not None:
            _validate_quantity(quantity)
            if not self.can_update_quantity(quantity):
                raise ValidationError(
                    f'Cannot reduce quantity to {quantity}: {self.sold} units already sold'
                )
        window = SaleWindow(start=sale_start or self.sale_start, end=sale_end or self.sale_end)

        return attrs.evolve(
            self,
            name=self.name if name is None else name,
            description=self.description if description is None else description,
            price=self.price if price is None else price,
            quantity=self.quantity if quantity is None else quantity,
            sale_start=window.start,
            sale_end=window.end,
            updated_at=utc_now(),
        )
