from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from src.service.ticket_inventory.domain.entity.reservation_entity import Reservation
from src.service.ticket_inventory.domain.enum.inventory_status import ReservationStatus


class IReservationRepo(ABC):
    """Persisted holds, so every unit inside `sold` can be traced back to a row"""

    @abstractmethod
    async def create(self, *, reservation: Reservation) -> Reservation:
        pass

    @abstractmethod
    async def get_by_id(self, *, reservation_id: str) -> Optional[Reservation]:
        pass

    @abstractmethod
    async def list_by_ids(self, *, reservation_ids: list[str]) -> list[Reservation]:
        pass

    @abstractmethod
    async def list_by_order(
        self, *, order_id: int, status: Optional[ReservationStatus] = None
    ) -> list[Reservation]:
        """Ordered by ticket type, so callers lock ticket_type rows in a stable order"""
        pass

    @abstractmethod
    async def attach_to_order(
        self, *, reservation_ids: list[str], owner_id: int, order_id: int
    ) -> int:
        """
        Bind held, unbound reservations of `owner_id` to an order.

        Returns:
            Number of reservations bound; callers compare it with len(reservation_ids)
        """
        pass

    @abstractmethod
    async def transition_status(
        self,
        *,
        reservation_id: str,
        expected: ReservationStatus,
        target: ReservationStatus,
        now: datetime,
        unbound_only: bool = False,
    ) -> bool:
        """
        Conditional status change (WHERE status = expected).

        With `unbound_only`, the change also requires order_id IS NULL, so a hold
        that was bound to an order in the meantime is left to the order.

        Returns:
            False when the reservation was no longer in `expected`
        """
        pass

    @abstractmethod
    async def list_expired_orphans(self, *, now: datetime, limit: int) -> list[Reservation]:
        """Held reservations past expires_at that were never bound to an order"""
        pass
