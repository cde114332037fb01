from datetime import datetime, timedelta
import re
import secrets
from typing import Optional

import attrs

from src.platform.logging.loguru_io import Logger
from src.platform.types.datetime_utils import utc_now
from src.service.ticket_inventory.domain.enum.inventory_status import OrderStatus
from src.service.ticket_inventory.domain.inventory_errors import (
    InvalidStateTransitionError,
    ValidationError,
)


ORDER_NUMBER_PATTERN = re.compile(r'^ORD-\d{8}-\d{6}$')
EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
MAX_TOTAL_AMOUNT = 10_000_000  # minor units
MAX_BILLING_NAME_LENGTH = 200


def generate_order_number(now: Optional[datetime] = None) -> str:
    """ORD-YYYYMMDD-NNNNNN with a CSPRNG suffix; uniqueness is enforced by the store"""
    now = now or utc_now()
    return f'ORD-{now:%Y%m%d}-{secrets.randbelow(1_000_000):06d}'


def validate_billing(*, billing_email: str, billing_name: str) -> None:
    if not billing_email or not EMAIL_PATTERN.match(billing_email):
        raise ValidationError('Invalid billing email format')
    if not billing_name or not billing_name.strip():
        raise ValidationError('Billing name is required')
    if len(billing_name) > MAX_BILLING_NAME_LENGTH:
        raise ValidationError(
            f'Billing name must be {MAX_BILLING_NAME_LENGTH} characters or less'
        )


@attrs.define
class Order:
    user_id: int
    event_id: int
    order_number: str
    total_amount: int
    billing_email: str
    billing_name: str
    status: OrderStatus = OrderStatus.PENDING
    payment_id: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    @Logger.io
    def create(
        cls,
        *,
        user_id: int,
        event_id: int,
        total_amount: int,
        billing_email: str,
        billing_name: str,
        now: Optional[datetime] = None,
    ) -> 'Order':
        if total_amount < 0:
            raise ValidationError('Total amount cannot be negative')
        if total_amount > MAX_TOTAL_AMOUNT:
            raise ValidationError(f'Total amount cannot exceed {MAX_TOTAL_AMOUNT}')
        validate_billing(billing_email=billing_email, billing_name=billing_name)

        now = now or utc_now()
        return cls(
            user_id=user_id,
            event_id=event_id,
            order_number=generate_order_number(now),
            total_amount=total_amount,
            billing_email=billing_email,
            billing_name=billing_name.strip(),
            status=OrderStatus.PENDING,
            created_at=now,
            updated_at=now,
        )

    def can_be_completed(self) -> bool:
        return self.status == OrderStatus.PENDING

    def can_be_cancelled(self) -> bool:
        return self.status == OrderStatus.PENDING

    def can_be_refunded(self) -> bool:
        return self.status == OrderStatus.COMPLETED

    def can_transition_to(self, target: OrderStatus) -> bool:
        """Each reachable status is gated by its own predicate on the current status"""
        predicate = {
            OrderStatus.COMPLETED: self.can_be_completed,
            OrderStatus.CANCELLED: self.can_be_cancelled,
            OrderStatus.REFUNDED: self.can_be_refunded,
        }.get(target)
        return predicate is not None and predicate()

    def ensure_can_transition_to(self, target: OrderStatus) -> None:
        if not self.can_transition_to(target):
            raise InvalidStateTransitionError(entity='order', current=self.status, target=target)

    def is_expired(self, *, ttl: timedelta, now: Optional[datetime] = None) -> bool:
        if self.status != OrderStatus.PENDING or self.created_at is None:
            return False
        return (now or utc_now()) - self.created_at > ttl

    def with_new_order_number(self) -> 'Order':
        return attrs.evolve(self, order_number=generate_order_number(self.created_at))

    def has_valid_order_number(self) -> bool:
        return bool(ORDER_NUMBER_PATTERN.match(self.order_number))
