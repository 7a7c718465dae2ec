"""Recurring bill API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from monev.api.deps import get_current_user, get_db
from monev.models.user import User
from monev.schemas.bill import BillCreate, BillPayment, BillResponse, BillUpdate
from monev.services.bill_service import BillService

router = APIRouter()


@router.get("", response_model=list[BillResponse])
async def list_bills(
    active_only: bool = False,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List bills ordered by due day."""
    return await BillService(db).list_bills(current_user, active_only=active_only)


@router.post("", response_model=BillResponse, status_code=201)
async def create_bill(
    data: BillCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await BillService(db).create_bill(data, current_user)


@router.patch("/{bill_id}", response_model=BillResponse)
async def update_bill(
    bill_id: int,
    data: BillUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await BillService(db).update_bill(bill_id, data, current_user)


@router.post("/{bill_id}/pay", response_model=BillResponse)
async def pay_bill(
    bill_id: int,
    data: BillPayment | None = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark a bill paid and, by default, record the expense."""
    return await BillService(db).pay_bill(bill_id, data or BillPayment(), current_user)


@router.delete("/{bill_id}", status_code=204)
async def delete_bill(
    bill_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await BillService(db).delete_bill(bill_id, current_user)
