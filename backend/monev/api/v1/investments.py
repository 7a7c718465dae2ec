"""Investment portfolio API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from monev.api.deps import get_current_user, get_db
from monev.models.user import User
from monev.schemas.investment import (
    InvestmentCreate,
    InvestmentResponse,
    InvestmentUpdate,
    PortfolioSummary,
)
from monev.services.investment_service import InvestmentService

router = APIRouter()


@router.get("", response_model=list[InvestmentResponse])
async def list_investments(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await InvestmentService(db).list_investments(current_user)


@router.get("/summary", response_model=PortfolioSummary)
async def portfolio_summary(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Totals and gain across all holdings, with market value per type."""
    return await InvestmentService(db).summary(current_user)


@router.post("", response_model=InvestmentResponse, status_code=201)
async def create_investment(
    data: InvestmentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await InvestmentService(db).create_investment(data, current_user)


@router.patch("/{investment_id}", response_model=InvestmentResponse)
async def update_investment(
    investment_id: int,
    data: InvestmentUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await InvestmentService(db).update_investment(investment_id, data, current_user)


@router.delete("/{investment_id}", status_code=204)
async def delete_investment(
    investment_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await InvestmentService(db).delete_investment(investment_id, current_user)
