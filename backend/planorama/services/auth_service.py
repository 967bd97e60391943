"""
Authentication service handling user registration and login.
"""

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from planorama.core.config import get_settings
from planorama.core.exceptions import ConflictError, ForbiddenError, UnauthorizedError
from planorama.core.logging import get_logger
from planorama.core.security import hash_password, verify_password, create_access_token
from planorama.models.invitation import InvitationToken
from planorama.models.user import User, OrganizerSettings
from planorama.schemas.user import UserCreate, UserLogin

logger = get_logger(__name__)
settings = get_settings()


async def link_tokens_to_user(db: AsyncSession, email: str, user_id: int) -> int:
    """
    Attach every unlinked invitation token issued to `email` to the account.
    Returns the number of tokens linked.
    """
    result = await db.execute(
        update(InvitationToken)
        .where(InvitationToken.email == email, InvitationToken.user_id.is_(None))
        .values(user_id=user_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Register a new user with hashed password.
    Raises 409 if the email already exists.
    """
    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        logger.warning("registration_failed", reason="email_exists", email=user_data.email)
        raise ConflictError("User already exists")

    user = User(
        email=user_data.email,
        hashed_password=hash_password(user_data.password),
        role=settings.DEFAULT_SIGNUP_ROLE,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        logger.warning("registration_failed", reason="email_race", email=user_data.email)
        raise ConflictError("User already exists")

    db.add(OrganizerSettings(user_id=user.id))
    await db.flush()

    linked = await link_tokens_to_user(db, user.email, user.id)

    logger.info("user_registered", user_id=user.id, email=user.email, linked_invitations=linked)
    return user


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> tuple[str, User]:
    """
    Authenticate user and return a JWT access token with the user.
    Raises 401 if credentials are invalid.
    """
    result = await db.execute(select(User).where(User.email == login_data.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed", email=login_data.email)
        raise UnauthorizedError("Invalid email or password")

    if not user.is_active:
        raise ForbiddenError("Account is deactivated")

    token = create_access_token(data={"sub": str(user.id)})
    logger.info("user_logged_in", user_id=user.id)
    return token, user
