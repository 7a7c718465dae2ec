"""Transaction model."""

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Float, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from monev.models.base import Base, SoftDeleteMixin, TimestampMixin

TRANSACTION_TYPES = ("expense", "income", "transfer")
TRANSACTION_SOURCES = ("manual", "ocr", "voice", "telegram")


class Transaction(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    # Minor currency units; expenses negative, income positive
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    merchant_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    category_id: Mapped[int | None] = mapped_column(ForeignKey("categories.id"), nullable=True)
    type: Mapped[str] = mapped_column(String(10), nullable=False, default="expense")
    payment_method: Mapped[str] = mapped_column(String(30), default="cash")
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    source: Mapped[str] = mapped_column(String(20), nullable=False, default="manual")
    ai_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Relationships
    user = relationship("User", back_populates="transactions")
    category = relationship("Category", back_populates="transactions")

    __table_args__ = (
        Index("idx_transactions_user_occurred", "user_id", "occurred_at"),
        Index("idx_transactions_user_merchant", "user_id", "merchant_name"),
    )
