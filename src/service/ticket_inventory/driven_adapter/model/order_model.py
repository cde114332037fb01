from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.platform.database.orm_db_setting import Base


class OrderModel(Base):
    __tablename__ = 'orders'
    __table_args__ = (Index('ix_orders_status_created_at', 'status', 'created_at'),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    event_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    order_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False)  # minor units
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='pending')
    payment_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    billing_email: Mapped[str] = mapped_column(String(255), nullable=False)
    billing_name: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
