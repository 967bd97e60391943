"""
Authentication endpoints: register, login and the current account.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from planorama.core.security import get_current_user
from planorama.db.session import get_db
from planorama.models.user import User
from planorama.schemas.user import Token, UserCreate, UserLogin, UserResponse
from planorama.services.auth_service import authenticate_user, register_user
from planorama.services.rate_limit_service import auth_rate_limiter

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth_rate_limiter)],
)
async def register(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a new organizer account."""
    return await register_user(db, user_data)


@router.post("/login", response_model=Token, dependencies=[Depends(auth_rate_limiter)])
async def login(login_data: UserLogin, db: AsyncSession = Depends(get_db)):
    """Authenticate and receive a JWT access token."""
    token, user = await authenticate_user(db, login_data)
    return Token(access_token=token, user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)):
    return user
