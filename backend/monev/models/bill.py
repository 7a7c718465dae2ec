"""Recurring bill model."""

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from monev.models.base import Base, TimestampMixin

BILL_FREQUENCIES = ("monthly", "weekly", "yearly")


class Bill(Base, TimestampMixin):
    __tablename__ = "bills"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    category_id: Mapped[int | None] = mapped_column(ForeignKey("categories.id"), nullable=True)
    due_day: Mapped[int] = mapped_column(Integer, nullable=False, default=1)  # day of month, 1-31
    frequency: Mapped[str] = mapped_column(String(10), nullable=False, default="monthly")
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False)
    last_paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    icon: Mapped[str] = mapped_column(String(50), default="Receipt")
    color: Mapped[str] = mapped_column(String(7), default="#6366f1")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    category = relationship("Category", lazy="joined")
