from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.platform.database.orm_db_setting import Base


class TicketTypeModel(Base):
    __tablename__ = 'ticket_type'
    __table_args__ = (
        CheckConstraint('sold >= 0', name='ck_ticket_type_sold_non_negative'),
        CheckConstraint('sold <= quantity', name='ck_ticket_type_sold_within_quantity'),
        CheckConstraint('price >= 0', name='ck_ticket_type_price_non_negative'),
        CheckConstraint('quantity > 0', name='ck_ticket_type_quantity_positive'),
        CheckConstraint('sale_start < sale_end', name='ck_ticket_type_sale_window'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default='')
    price: Mapped[int] = mapped_column(Integer, nullable=False)  # minor units
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    sold: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sale_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    sale_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
