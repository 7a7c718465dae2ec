"""Authentication API routes: email + password credentials, JWT bearer tokens."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from monev.api.deps import get_current_user, get_db
from monev.models.user import User
from monev.schemas.user import AuthResponse, RefreshRequest, TokenResponse, UserLogin, UserRegister, UserResponse
from monev.services.auth_service import AuthService

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(data: UserRegister, db: AsyncSession = Depends(get_db)):
    """Create an account and return the user with a token pair."""
    return await AuthService(db).register(data)


@router.post("/login", response_model=AuthResponse)
async def login(data: UserLogin, db: AsyncSession = Depends(get_db)):
    return await AuthService(db).login(data)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(data: RefreshRequest, db: AsyncSession = Depends(get_db)):
    return await AuthService(db).refresh(data.refresh_token)


@router.get("/me", response_model=UserResponse)
async def auth_me(user: User = Depends(get_current_user)):
    return user
