from datetime import datetime

import attrs


@attrs.frozen
class ReservationToken:
    """Handle returned by reserve(); the only thing release() needs"""

    reservation_id: str
    ticket_type_id: int
    owner_id: int
    quantity: int
    expires_at: datetime
