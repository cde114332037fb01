"""Ticket Inventory Domain Enums"""

from src.service.ticket_inventory.domain.enum.inventory_status import (
    OrderStatus,
    ReleaseReason,
    ReservationStatus,
    TicketStatus,
)

__all__ = ['OrderStatus', 'ReleaseReason', 'ReservationStatus', 'TicketStatus']
