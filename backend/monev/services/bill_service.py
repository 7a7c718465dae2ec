"""Recurring bill service."""

from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from monev.core.exceptions import NotFoundError, ValidationError
from monev.models.bill import Bill
from monev.models.category import Category
from monev.models.user import User
from monev.schemas.bill import BillCreate, BillPayment, BillUpdate
from monev.schemas.transaction import TransactionCreate
from monev.services.transaction_service import TransactionService

logger = structlog.get_logger()


class BillService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_bills(self, user: User, active_only: bool = False) -> list[Bill]:
        query = select(Bill).where(Bill.user_id == user.id)
        if active_only:
            query = query.where(Bill.is_active.is_(True))
        result = await self.db.execute(query.order_by(Bill.due_day, Bill.name))
        return list(result.scalars().unique().all())

    async def create_bill(self, data: BillCreate, user: User) -> Bill:
        await self._check_category(data.category_id, user)
        bill = Bill(user_id=user.id, **data.model_dump(exclude_none=True))
        self.db.add(bill)
        await self.db.flush()
        await self.db.refresh(bill)
        logger.info("bill_created", bill_id=bill.id, user_id=user.id)
        return bill

    async def update_bill(self, bill_id: int, data: BillUpdate, user: User) -> Bill:
        bill = await self._get_owned(bill_id, user)
        update_data = data.model_dump(exclude_unset=True)
        if "category_id" in update_data:
            await self._check_category(update_data["category_id"], user)
        for key, value in update_data.items():
            setattr(bill, key, value)
        await self.db.flush()
        await self.db.refresh(bill)
        return bill

    async def pay_bill(self, bill_id: int, data: BillPayment, user: User) -> Bill:
        """Mark a bill paid, optionally recording the payment as an expense."""
        bill = await self._get_owned(bill_id, user)
        now = datetime.now(timezone.utc)
        bill.is_paid = True
        bill.last_paid_at = now
        if data.record_transaction:
            await TransactionService(self.db).create_transaction(
                TransactionCreate(
                    amount=bill.amount,
                    description=bill.name,
                    merchant_name=bill.name,
                    type="expense",
                    category_id=bill.category_id,
                    payment_method=data.payment_method,
                    occurred_at=now,
                    is_verified=True,
                ),
                user,
            )
        await self.db.flush()
        await self.db.refresh(bill)
        logger.info("bill_paid", bill_id=bill.id, recorded=data.record_transaction)
        return bill

    async def delete_bill(self, bill_id: int, user: User) -> None:
        bill = await self._get_owned(bill_id, user)
        await self.db.delete(bill)
        await self.db.flush()

    async def _check_category(self, category_id: int | None, user: User) -> None:
        if category_id is None:
            return
        category = await self.db.get(Category, category_id)
        if not category or not (category.is_system or category.user_id == user.id):
            raise ValidationError(f"Unknown category: {category_id}")

    async def _get_owned(self, bill_id: int, user: User) -> Bill:
        result = await self.db.execute(select(Bill).where(Bill.id == bill_id, Bill.user_id == user.id))
        bill = result.unique().scalar_one_or_none()
        if not bill:
            raise NotFoundError("Bill")
        return bill
