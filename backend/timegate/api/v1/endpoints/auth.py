"""
Auth endpoints plus the dependencies that guard every other route.

JWT bearer tokens only, no cookies and no refresh token. The guard reloads the
user on each request, so deactivation and employee login windows apply to
tokens that are already issued.
"""
from datetime import datetime
from typing import Any, Optional
from fastapi import APIRouter, Depends, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from timegate.core.database import get_db
from timegate.core.logging_config import get_logger
from timegate.core.security import PasswordHasher, TokenService, get_password_hasher, get_token_service
from timegate.models.user import RoleEnum, User
from timegate.schemas.auth import ChangePasswordRequest, LoginResponse, MessageResponse, UserResponse
from timegate.schemas.user import UserCreate
from timegate.services import auth_service
from timegate.services.access_guard import AccessGuard

logger = get_logger("auth")

router = APIRouter()
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def get_now() -> datetime:
    """Wall clock used for token expiry and login windows (local time, tz-aware)."""
    return datetime.now().astimezone()


def get_client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    now: datetime = Depends(get_now),
) -> Any:
    """Returns the current User. Annotated as Any so FastAPI does not use SQLAlchemy User as a Pydantic response type."""
    user = AccessGuard(db, tokens).authenticate(token, now=now)
    # request.state gets the public summary only, never the password hash
    request.state.user = UserResponse.model_validate(user)
    return user


class RequireRole:
    """Dependency that layers a role check on top of get_current_user."""

    def __init__(self, role: RoleEnum):
        self.role = role

    def __call__(self, current_user: User = Depends(get_current_user)) -> Any:
        return AccessGuard.require_role(current_user, self.role)


require_admin = RequireRole(RoleEnum.ADMIN)


@router.post("/login", response_model=LoginResponse)
async def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    tokens: TokenService = Depends(get_token_service),
    now: datetime = Depends(get_now),
):
    """Login with email (form field `username`) and password; returns the bearer token and user summary."""
    result = await run_in_threadpool(
        auth_service.login,
        db,
        hasher,
        tokens,
        form_data.username,
        form_data.password,
        get_client_ip(request),
        request.headers.get("user-agent"),
        now,
    )
    return LoginResponse(
        access_token=result.token.access_token,
        token_type="bearer",
        expires_in=result.token.expires_in,
        user=UserResponse.model_validate(result.user),
    )


@router.get("/profile", response_model=UserResponse)
async def read_profile(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/logout", response_model=MessageResponse)
async def logout(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    """Close the caller's most recent open session. Succeeds even when nothing was open."""
    auth_service.logout(db, current_user.id, now=now)
    return MessageResponse(message="Logged out successfully")


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    payload: ChangePasswordRequest,
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    current_user: User = Depends(get_current_user),
):
    await run_in_threadpool(
        auth_service.change_password,
        db,
        hasher,
        current_user.id,
        payload.current_password,
        payload.new_password,
    )
    return MessageResponse(message="Password changed successfully")


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: UserCreate,
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    current_user: User = Depends(require_admin),
):
    """Create a user (admin only)."""
    user = await run_in_threadpool(auth_service.register_user, db, hasher, payload)
    logger.info("user id=%s registered by admin id=%s", user.id, current_user.id)
    return user
