"""SQLAlchemy models."""

from monev.models.base import Base
from monev.models.bill import Bill
from monev.models.budget import Budget
from monev.models.category import Category
from monev.models.goal import Goal
from monev.models.investment import Investment
from monev.models.transaction import Transaction
from monev.models.user import User
from monev.models.user_settings import UserSettings

__all__ = [
    "Base",
    "User",
    "UserSettings",
    "Category",
    "Transaction",
    "Budget",
    "Goal",
    "Bill",
    "Investment",
]
