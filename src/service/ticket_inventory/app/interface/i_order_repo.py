from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from src.service.ticket_inventory.domain.entity.order_entity import Order
from src.service.ticket_inventory.domain.enum.inventory_status import OrderStatus


class IOrderRepo(ABC):
    @abstractmethod
    async def create(self, *, order: Order, max_attempts: int) -> Order:
        """
        Insert a pending order.

        On an order_number collision the number is regenerated and the insert
        retried, up to `max_attempts` inserts in total.

        Raises:
            ConflictError: No free order number after `max_attempts`
        """
        pass

    @abstractmethod
    async def get_by_id(self, *, order_id: int) -> Optional[Order]:
        pass

    @abstractmethod
    async def get_by_order_number(self, *, order_number: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def list_by_user(self, *, user_id: int, limit: int, offset: int = 0) -> list[Order]:
        """The buyer's orders, newest first"""
        pass

    @abstractmethod
    async def transition_status(
        self,
        *,
        order_id: int,
        expected: OrderStatus,
        target: OrderStatus,
        now: datetime,
        payment_id: Optional[str] = None,
    ) -> Optional[Order]:
        """
        UPDATE ... SET status = target WHERE id = order_id AND status = expected.

        This is the race arbiter between completion, cancellation and expiry:
        of concurrent callers expecting the same status, exactly one gets the row.

        Returns:
            The updated order, or None when the row was not in `expected`
        """
        pass

    @abstractmethod
    async def list_expired_pending_ids(self, *, cutoff: datetime, limit: int) -> list[int]:
        """Pending orders created before `cutoff`, oldest first"""
        pass

    @abstractmethod
    async def delete_if_without_tickets(self, *, order_id: int, status: OrderStatus) -> bool:
        """Delete the order while it is still in `status` and owns no tickets"""
        pass
