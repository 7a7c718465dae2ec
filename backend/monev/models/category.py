"""Spending and income categories.

System categories (``is_system``, no owner) are seeded by the first migration
and shared by every user; users add their own on top.
"""

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from monev.models.base import Base, TimestampMixin

CATEGORY_TYPES = ("expense", "income")
DEFAULT_COLOR = "#3b82f6"
DEFAULT_ICON = "Wallet"


class Category(Base, TimestampMixin):
    __tablename__ = "categories"
    __table_args__ = (
        CheckConstraint("type IN ('expense', 'income')", name="ck_categories_type"),
        UniqueConstraint("user_id", "name", "type", name="uq_categories_owner_name_type"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(10), default="expense")
    color: Mapped[str] = mapped_column(String(7), default=DEFAULT_COLOR)
    icon: Mapped[str] = mapped_column(String(50), default=DEFAULT_ICON)
    is_system: Mapped[bool] = mapped_column(Boolean, default=False)

    user = relationship("User", back_populates="categories")
    transactions = relationship("Transaction", back_populates="category")

    def visible_to(self, user_id: int) -> bool:
        return self.is_system or self.user_id == user_id
