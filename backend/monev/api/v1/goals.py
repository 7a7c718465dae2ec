"""Savings goal API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from monev.api.deps import get_current_user, get_db
from monev.models.user import User
from monev.schemas.goal import GoalContribution, GoalCreate, GoalResponse, GoalUpdate
from monev.services.goal_service import GoalService

router = APIRouter()


@router.get("", response_model=list[GoalResponse])
async def list_goals(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await GoalService(db).list_goals(current_user)


@router.post("", response_model=GoalResponse, status_code=201)
async def create_goal(
    data: GoalCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await GoalService(db).create_goal(data, current_user)


@router.get("/{goal_id}", response_model=GoalResponse)
async def get_goal(
    goal_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await GoalService(db).get_goal(goal_id, current_user)


@router.patch("/{goal_id}", response_model=GoalResponse)
async def update_goal(
    goal_id: int,
    data: GoalUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await GoalService(db).update_goal(goal_id, data, current_user)


@router.post("/{goal_id}/contribute", response_model=GoalResponse)
async def contribute(
    goal_id: int,
    data: GoalContribution,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Add money to a goal."""
    return await GoalService(db).contribute(goal_id, data, current_user)


@router.delete("/{goal_id}", status_code=204)
async def delete_goal(
    goal_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await GoalService(db).delete_goal(goal_id, current_user)
