from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.platform.database.orm_db_setting import Base


class ReservationModel(Base):
    __tablename__ = 'reservation'
    __table_args__ = (Index('ix_reservation_status_expires_at', 'status', 'expires_at'),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)  # UUID7
    ticket_type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey('ticket_type.id', ondelete='CASCADE'), nullable=False, index=True
    )
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    order_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey('orders.id', ondelete='SET NULL'), nullable=True, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='held')
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
