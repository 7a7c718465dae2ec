"""Investment holding model."""

from decimal import Decimal

from sqlalchemy import ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from monev.models.base import Base, TimestampMixin

INVESTMENT_TYPES = ("stock", "crypto", "mutual_fund", "gold", "bond", "other")


class Investment(Base, TimestampMixin):
    __tablename__ = "investments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)  # BTC, BBCA, Emas...
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="other")
    quantity: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)  # shares / coins / grams
    avg_buy_price: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    current_price: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)  # updated manually
    platform: Mapped[str | None] = mapped_column(String(100), nullable=True)
    icon: Mapped[str] = mapped_column(String(50), default="TrendingUp")
    color: Mapped[str] = mapped_column(String(7), default="#10b981")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
