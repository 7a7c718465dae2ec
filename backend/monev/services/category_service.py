"""Category management: shared system categories plus each user's own."""

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from monev.core.exceptions import AlreadyExistsError, ConflictError, ForbiddenError, NotFoundError
from monev.models.bill import Bill
from monev.models.budget import Budget
from monev.models.category import DEFAULT_COLOR, DEFAULT_ICON, Category
from monev.models.transaction import Transaction
from monev.models.user import User
from monev.schemas.category import CategoryCreate, CategoryUpdate

logger = structlog.get_logger()

# Tables whose rows keep a category alive
_REFERENCING = (Transaction, Budget, Bill)


def _visible(user: User):
    return or_(Category.is_system.is_(True), Category.user_id == user.id)


class CategoryService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_categories(
        self, user: User, type_: str | None = None, search: str | None = None
    ) -> list[Category]:
        query = select(Category).where(_visible(user))
        if type_:
            query = query.where(Category.type == type_)
        if search:
            query = query.where(Category.name.ilike(f"%{search.strip()}%"))
        result = await self.db.execute(query.order_by(Category.type, Category.is_system.desc(), Category.name))
        return list(result.scalars().all())

    async def get_visible(self, category_id: int, user: User) -> Category:
        """A system category or one owned by the user; anything else is not found."""
        category = await self.db.get(Category, category_id)
        if category is None or not category.visible_to(user.id):
            raise NotFoundError("Category")
        return category

    async def create_category(self, data: CategoryCreate, user: User) -> Category:
        await self._ensure_unique(data.name, data.type, user)
        category = Category(
            user_id=user.id,
            name=data.name,
            type=data.type,
            icon=data.icon or DEFAULT_ICON,
            color=data.color or DEFAULT_COLOR,
            is_system=False,
        )
        self.db.add(category)
        await self.db.flush()
        await self.db.refresh(category)
        logger.info("category_created", category_id=category.id, user_id=user.id)
        return category

    async def update_category(self, category_id: int, data: CategoryUpdate, user: User) -> Category:
        category = await self._owned(category_id, user)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "name" in changes or "type" in changes:
            await self._ensure_unique(
                changes.get("name", category.name), changes.get("type", category.type), user, skip_id=category.id
            )
        for key, value in changes.items():
            setattr(category, key, value)
        await self.db.flush()
        await self.db.refresh(category)
        return category

    async def delete_category(self, category_id: int, user: User) -> None:
        """Delete a user category that nothing references anymore."""
        category = await self._owned(category_id, user)
        for model in _REFERENCING:
            in_use = await self.db.scalar(
                select(func.count()).select_from(model).where(model.category_id == category.id)
            )
            if in_use:
                raise ConflictError(f"Category is still used by {in_use} {model.__tablename__}")
        await self.db.delete(category)
        await self.db.flush()
        logger.info("category_deleted", category_id=category_id, user_id=user.id)

    async def _owned(self, category_id: int, user: User) -> Category:
        category = await self.get_visible(category_id, user)
        if category.is_system:
            raise ForbiddenError("System categories cannot be modified")
        return category

    async def _ensure_unique(self, name: str, type_: str, user: User, skip_id: int | None = None) -> None:
        query = select(Category.id).where(
            Category.user_id == user.id,
            func.lower(Category.name) == name.lower(),
            Category.type == type_,
        )
        if skip_id is not None:
            query = query.where(Category.id != skip_id)
        if await self.db.scalar(query) is not None:
            raise AlreadyExistsError("Category")
