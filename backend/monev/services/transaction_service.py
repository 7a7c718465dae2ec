"""Transaction management service."""

from datetime import date, datetime, time, timezone
from math import ceil

import structlog
from sqlalchemy import case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from monev.core.exceptions import NotFoundError, ValidationError
from monev.models.category import Category
from monev.models.transaction import Transaction
from monev.models.user import User
from monev.schemas.transaction import TransactionCreate, TransactionUpdate
from monev.services.periods import app_timezone

logger = structlog.get_logger()


def signed_amount(amount: int, type_: str) -> int:
    """Stored sign convention: income positive, expenses and transfers negative."""
    return abs(amount) if type_ == "income" else -abs(amount)


def _as_dict(txn: Transaction, category_name: str | None) -> dict:
    return {
        "id": txn.id,
        "amount": txn.amount,
        "description": txn.description,
        "merchant_name": txn.merchant_name,
        "category_id": txn.category_id,
        "category_name": category_name,
        "type": txn.type,
        "payment_method": txn.payment_method,
        "occurred_at": txn.occurred_at,
        "is_verified": txn.is_verified,
        "source": txn.source,
        "ai_confidence": txn.ai_confidence,
        "created_at": txn.created_at,
    }


class TransactionService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_transactions(
        self,
        user: User,
        page: int = 1,
        per_page: int = 50,
        date_from: date | None = None,
        date_to: date | None = None,
        category_id: int | None = None,
        type_: str | None = None,
        search: str | None = None,
    ) -> dict:
        """List transactions with pagination and filters, newest first."""
        tz = app_timezone()
        clauses = [Transaction.user_id == user.id, Transaction.deleted_at.is_(None)]
        if date_from:
            clauses.append(Transaction.occurred_at >= datetime.combine(date_from, time.min, tzinfo=tz))
        if date_to:
            clauses.append(Transaction.occurred_at <= datetime.combine(date_to, time.max, tzinfo=tz))
        if category_id:
            clauses.append(Transaction.category_id == category_id)
        if type_:
            clauses.append(Transaction.type == type_)
        if search:
            clauses.append(or_(
                Transaction.description.ilike(f"%{search}%"),
                Transaction.merchant_name.ilike(f"%{search}%"),
            ))

        # Count total + aggregate income/expenses in one query
        agg_row = (await self.db.execute(
            select(
                func.count().label("total"),
                func.coalesce(func.sum(
                    case((Transaction.type == "income", func.abs(Transaction.amount)), else_=0)
                ), 0).label("total_income"),
                func.coalesce(func.sum(
                    case((Transaction.type == "expense", func.abs(Transaction.amount)), else_=0)
                ), 0).label("total_expense"),
            ).where(*clauses)
        )).one()
        total = agg_row.total or 0

        result = await self.db.execute(
            select(Transaction, Category.name)
            .outerjoin(Category, Category.id == Transaction.category_id)
            .where(*clauses)
            .order_by(Transaction.occurred_at.desc(), Transaction.id.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        items = [_as_dict(txn, category_name) for txn, category_name in result.all()]

        return {
            "items": items,
            "total": total,
            "page": page,
            "per_page": per_page,
            "pages": ceil(total / per_page) if total else 0,
            "total_income": int(agg_row.total_income),
            "total_expense": int(agg_row.total_expense),
        }

    async def get_transaction(self, transaction_id: int, user: User) -> dict:
        txn = await self._get_owned(transaction_id, user)
        return await self._enrich(txn)

    async def create_transaction(self, data: TransactionCreate, user: User) -> dict:
        """Create a transaction. The amount sign follows the type."""
        await self._check_category(data.category_id, user)
        txn = Transaction(
            user_id=user.id,
            amount=signed_amount(data.amount, data.type),
            description=data.description.strip(),
            merchant_name=(data.merchant_name or "").strip() or None,
            category_id=data.category_id,
            type=data.type,
            payment_method=data.payment_method,
            occurred_at=data.occurred_at or datetime.now(timezone.utc),
            is_verified=data.is_verified,
            source=data.source,
            ai_confidence=data.ai_confidence,
        )
        self.db.add(txn)
        await self.db.flush()
        await self.db.refresh(txn)
        logger.info("transaction_created", transaction_id=txn.id, user_id=user.id, source=txn.source)
        return await self._enrich(txn)

    async def update_transaction(self, transaction_id: int, data: TransactionUpdate, user: User) -> dict:
        txn = await self._get_owned(transaction_id, user)
        update_data = data.model_dump(exclude_unset=True)
        if "category_id" in update_data:
            await self._check_category(update_data["category_id"], user)
        type_ = update_data.pop("type", None) or txn.type
        amount = update_data.pop("amount", None) or abs(txn.amount)
        for key, value in update_data.items():
            setattr(txn, key, value)
        txn.type = type_
        txn.amount = signed_amount(amount, type_)
        await self.db.flush()
        await self.db.refresh(txn)
        return await self._enrich(txn)

    async def verify_transaction(self, transaction_id: int, user: User) -> dict:
        txn = await self._get_owned(transaction_id, user)
        txn.is_verified = True
        await self.db.flush()
        await self.db.refresh(txn)
        return await self._enrich(txn)

    async def delete_transaction(self, transaction_id: int, user: User) -> None:
        """Soft-delete: the row stays but disappears from every read."""
        txn = await self._get_owned(transaction_id, user)
        txn.deleted_at = datetime.now(timezone.utc)
        await self.db.flush()
        logger.info("transaction_deleted", transaction_id=transaction_id, user_id=user.id)

    async def _get_owned(self, transaction_id: int, user: User) -> Transaction:
        result = await self.db.execute(
            select(Transaction).where(
                Transaction.id == transaction_id,
                Transaction.user_id == user.id,
                Transaction.deleted_at.is_(None),
            )
        )
        txn = result.scalar_one_or_none()
        if not txn:
            raise NotFoundError("Transaction")
        return txn

    async def _check_category(self, category_id: int | None, user: User) -> None:
        if category_id is None:
            return
        category = await self.db.get(Category, category_id)
        if not category or not (category.is_system or category.user_id == user.id):
            raise ValidationError(f"Unknown category: {category_id}")

    async def _enrich(self, txn: Transaction) -> dict:
        category_name = None
        if txn.category_id:
            category = await self.db.get(Category, txn.category_id)
            category_name = category.name if category else None
        return _as_dict(txn, category_name)
