"""
Ticket Type Repository Interface

`adjust_inventory` is the only write path for `sold`. It is a compare-and-swap:
a single conditional update that either applies the whole delta while keeping
0 <= sold <= quantity, or changes nothing and raises.
"""

from abc import ABC, abstractmethod
from typing import Optional

from src.service.ticket_inventory.domain.entity.ticket_type_entity import TicketType


class ITicketTypeRepo(ABC):
    @abstractmethod
    async def create(self, *, ticket_type: TicketType) -> TicketType:
        pass

    @abstractmethod
    async def get_by_id(self, *, ticket_type_id: int) -> Optional[TicketType]:
        pass

    @abstractmethod
    async def get_for_update(self, *, ticket_type_id: int) -> Optional[TicketType]:
        """
        Read the row and hold a pessimistic lock on it until the transaction ends.
        Concurrent reserve/release on the same ticket type serialise here.
        """
        pass

    @abstractmethod
    async def list_by_event(self, *, event_id: int) -> list[TicketType]:
        pass

    @abstractmethod
    async def adjust_inventory(
        self, *, ticket_type_id: int, delta: int, expected_version: Optional[int] = None
    ) -> TicketType:
        """
        Atomically apply `sold += delta` (and bump version).

        Args:
            ticket_type_id: Target ticket type
            delta: Positive to take units out of sale, negative to return them
            expected_version: When given, the update only applies if the row still
                has this version (optimistic path)

        Returns:
            The ticket type after the adjustment

        Raises:
            NotFoundError: Ticket type does not exist
            InsufficientStockError: `sold + delta` would exceed quantity
            ReservationStateError: `sold + delta` would go negative
            InventoryVersionConflictError: Version moved since it was read
        """
        pass

    @abstractmethod
    async def update_details(self, *, ticket_type: TicketType) -> Optional[TicketType]:
        """
        Persist name/description/price/quantity/sale window.

        The write is guarded by `sold <= new quantity` in the same statement;
        returns None when the guard fails (units were sold meanwhile).
        """
        pass

    @abstractmethod
    async def delete_if_unsold(self, *, ticket_type_id: int) -> bool:
        """Delete only while sold = 0. Returns False when the guard fails."""
        pass
