from datetime import datetime
import secrets
from typing import Optional

import attrs

from src.service.ticket_inventory.domain.enum.inventory_status import TicketStatus
from src.service.ticket_inventory.domain.value_object.ticket_spec import TicketSpec


QR_CODE_PREFIX = 'TKT-'


def generate_qr_code() -> str:
    # 32 random bytes, nothing derived from order metadata
    return f'{QR_CODE_PREFIX}{secrets.token_urlsafe(32)}'


@attrs.define
class Ticket:
    order_id: int
    ticket_type_id: int
    qr_code: str
    status: TicketStatus = TicketStatus.ACTIVE
    holder_name: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    used_at: Optional[datetime] = None

    @classmethod
    def mint(cls, *, order_id: int, spec: TicketSpec, now: datetime) -> 'Ticket':
        return cls(
            order_id=order_id,
            ticket_type_id=spec.ticket_type_id,
            qr_code=generate_qr_code(),
            status=TicketStatus.ACTIVE,
            holder_name=spec.holder_name,
            created_at=now,
        )

    def can_be_used(self) -> bool:
        return self.status == TicketStatus.ACTIVE

    def can_be_refunded(self) -> bool:
        return self.status == TicketStatus.ACTIVE
