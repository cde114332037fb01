from datetime import datetime, timedelta

import attrs

from src.platform.types.datetime_utils import as_utc
from src.service.ticket_inventory.domain.inventory_errors import ValidationError


MIN_SALE_WINDOW = timedelta(hours=1)


def _validate_window(instance: 'SaleWindow', attribute: attrs.Attribute, value: datetime) -> None:
    if instance.start >= value:
        raise ValidationError('Sale start must be before sale end')
    if value - instance.start < MIN_SALE_WINDOW:
        raise ValidationError('Sale window must be at least one hour')


@attrs.frozen
class SaleWindow:
    """Half-open interval [start, end) during which a ticket type can be reserved"""

    start: datetime = attrs.field(converter=as_utc)
    end: datetime = attrs.field(converter=as_utc, validator=_validate_window)

    def has_started(self, now: datetime) -> bool:
        return self.start <= now

    def has_ended(self, now: datetime) -> bool:
        return now >= self.end

    def contains(self, now: datetime) -> bool:
        return self.start <= now < self.end
