from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from src.service.ticket_inventory.domain.entity.ticket_entity import Ticket
from src.service.ticket_inventory.domain.enum.inventory_status import TicketStatus


class ITicketRepo(ABC):
    @abstractmethod
    async def create_many(self, *, tickets: list[Ticket]) -> list[Ticket]:
        pass

    @abstractmethod
    async def list_by_order(self, *, order_id: int) -> list[Ticket]:
        pass

    @abstractmethod
    async def list_by_event(self, *, event_id: int, limit: int, offset: int = 0) -> list[Ticket]:
        """Tickets of every ticket type of the event, newest first"""
        pass

    @abstractmethod
    async def list_by_user(self, *, user_id: int, limit: int, offset: int = 0) -> list[Ticket]:
        """Tickets of the buyer's orders, newest first"""
        pass

    @abstractmethod
    async def get_by_qr_code(self, *, qr_code: str) -> Optional[Ticket]:
        pass

    @abstractmethod
    async def count_by_order(
        self, *, order_id: int, status: Optional[TicketStatus] = None
    ) -> int:
        pass

    @abstractmethod
    async def mark_used(self, *, ticket_id: int, now: datetime) -> Optional[Ticket]:
        """active -> used, conditional; None when the ticket was not active"""
        pass

    @abstractmethod
    async def refund_active_by_order(self, *, order_id: int) -> int:
        """active -> refunded for every ticket of the order; returns rows changed"""
        pass
