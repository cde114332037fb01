from collections import Counter
from typing import Iterable, Optional

import attrs

from src.service.ticket_inventory.domain.inventory_errors import ValidationError


@attrs.frozen
class TicketSpec:
    """One unit to mint at fulfillment time (one spec, one ticket row)"""

    ticket_type_id: int
    holder_name: Optional[str] = None


def count_by_ticket_type(ticket_specs: Iterable[TicketSpec]) -> Counter[int]:
    return Counter(spec.ticket_type_id for spec in ticket_specs)


def validate_ticket_specs(ticket_specs: list[TicketSpec]) -> None:
    if not ticket_specs:
        raise ValidationError('At least one ticket spec is required')
    for spec in ticket_specs:
        if spec.ticket_type_id <= 0:
            raise ValidationError(f'Invalid ticket type id in ticket spec: {spec.ticket_type_id}')
        if spec.holder_name is not None and len(spec.holder_name) > 100:
            raise ValidationError('Ticket holder name must be 100 characters or less')
