"""Budget API routes."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from monev.api.deps import get_current_user, get_db
from monev.models.user import User
from monev.schemas.budget import BudgetCreate, BudgetResponse, BudgetUpdate
from monev.services.budget_service import BudgetService
from monev.services.periods import app_timezone

router = APIRouter()


@router.get("", response_model=list[BudgetResponse])
async def list_budgets(
    month: int | None = Query(None, ge=1, le=12),
    year: int | None = Query(None, ge=2000, le=9999),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Budgets for a month (default: current) with spend recomputed from transactions."""
    today = datetime.now(app_timezone()).date()
    return await BudgetService(db).list_budgets(current_user, month or today.month, year or today.year)


@router.post("", response_model=BudgetResponse, status_code=201)
async def create_budget(
    data: BudgetCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a budget. One per (category, month, year)."""
    return await BudgetService(db).create_budget(data, current_user)


@router.patch("/{budget_id}", response_model=BudgetResponse)
async def update_budget(
    budget_id: int,
    data: BudgetUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await BudgetService(db).update_budget(budget_id, data, current_user)


@router.delete("/{budget_id}", status_code=204)
async def delete_budget(
    budget_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await BudgetService(db).delete_budget(budget_id, current_user)
