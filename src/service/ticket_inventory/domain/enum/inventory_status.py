from enum import StrEnum


class OrderStatus(StrEnum):
    PENDING = 'pending'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    REFUNDED = 'refunded'


class TicketStatus(StrEnum):
    ACTIVE = 'active'
    USED = 'used'
    REFUNDED = 'refunded'


class ReservationStatus(StrEnum):
    HELD = 'held'
    RELEASED = 'released'
    CONSUMED = 'consumed'


class ReleaseReason(StrEnum):
    EXPLICIT = 'explicit'
    ORDER_CANCELLED = 'order_cancelled'
    EXPIRED = 'expired'
