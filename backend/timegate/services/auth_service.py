"""
Login, logout and account management on top of the user store.

Hashing is CPU bound; the async endpoints call these functions through
run_in_threadpool so a slow bcrypt round does not block the event loop.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from timegate.core import errors
from timegate.core.config import Settings
from timegate.core.errors import Conflict, Forbidden, NotFound, ValidationFailure
from timegate.core.logging_config import get_logger
from timegate.core.security import IssuedToken, PasswordHasher, TokenService
from timegate.models.user import RoleEnum, User
from timegate.schemas.user import UserCreate
from timegate.services.access_guard import enforce_login_window
from timegate.services.session_tracker import SessionTracker

logger = get_logger("auth_service")

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"

UPDATABLE_FIELDS = (
    "name",
    "phone",
    "role",
    "login_start_time",
    "login_end_time",
    "is_active",
)


@dataclass
class LoginResult:
    token: IssuedToken
    user: User


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFound(errors.USER_NOT_FOUND, "User not found")
    return user


def login(
    db: Session,
    hasher: PasswordHasher,
    tokens: TokenService,
    email: str,
    password: str,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    now: Optional[datetime] = None,
) -> LoginResult:
    email = normalize_email(email)
    logger.info("login attempt for email=%s", email)

    user = db.query(User).filter(User.email == email).first()
    if user is None:
        logger.warning("login failed for email=%s (reason=unknown_email)", email)
        raise ValidationFailure(errors.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)

    if not hasher.verify(password, user.hashed_password):
        logger.warning("login failed for email=%s (reason=bad_password)", email)
        raise ValidationFailure(errors.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)

    if not user.is_active:
        logger.warning("login refused for email=%s (reason=deactivated)", email)
        raise Forbidden(errors.ACCOUNT_DEACTIVATED, "Account has been deactivated. Please contact admin.")

    enforce_login_window(user, now)

    token = tokens.issue(user.id, user.role.value, user.email, now=now)
    SessionTracker(db).start_session(user.id, ip_address=ip_address, user_agent=user_agent, now=now)

    logger.info("login success for email=%s user_id=%s role=%s", email, user.id, user.role.value)
    return LoginResult(token=token, user=user)


def logout(db: Session, user_id: int, now: Optional[datetime] = None):
    return SessionTracker(db).end_session(user_id, now=now)


def change_password(
    db: Session,
    hasher: PasswordHasher,
    user_id: int,
    current_password: str,
    new_password: str,
) -> None:
    user = get_user_or_404(db, user_id)
    if not hasher.verify(current_password, user.hashed_password):
        logger.warning("change_password: current password mismatch user_id=%s", user_id)
        raise ValidationFailure(errors.INCORRECT_PASSWORD, "Current password is incorrect")
    user.hashed_password = hasher.hash(new_password)
    db.commit()
    logger.info("password changed user_id=%s", user_id)


def register_user(db: Session, hasher: PasswordHasher, data: UserCreate) -> User:
    email = normalize_email(data.email)
    if db.query(User.id).filter(User.email == email).first() is not None:
        raise Conflict(errors.EMAIL_EXISTS, "User with this email already exists")

    user = User(
        name=data.name,
        email=email,
        phone=data.phone,
        hashed_password=hasher.hash(data.password),
        role=data.role,
        is_active=True,
        login_start_time=data.login_start_time,
        login_end_time=data.login_end_time,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("user registered id=%s email=%s role=%s", user.id, email, user.role.value)
    return user


def reset_password(db: Session, hasher: PasswordHasher, user_id: int, new_password: str) -> int:
    """Admin reset. Every open session of the user is closed; returns how many."""
    user = get_user_or_404(db, user_id)
    user.hashed_password = hasher.hash(new_password)
    db.commit()
    closed = SessionTracker(db).end_all_sessions(user_id)
    logger.info("password reset user_id=%s sessions_closed=%s", user_id, closed)
    return closed


def update_user(db: Session, user_id: int, updates: Dict[str, Any]) -> User:
    user = get_user_or_404(db, user_id)
    data = {k: v for k, v in updates.items() if k in UPDATABLE_FIELDS}
    if not data:
        raise ValidationFailure(errors.NO_FIELDS, "No fields to update")
    for key, value in data.items():
        setattr(user, key, value)
    db.commit()
    db.refresh(user)
    logger.info("user updated id=%s fields=%s", user_id, sorted(data))
    return user


def delete_user(db: Session, actor_id: int, user_id: int) -> Tuple[int, str]:
    if actor_id == user_id:
        raise ValidationFailure(errors.CANNOT_DELETE_SELF, "Cannot delete your own account")
    user = get_user_or_404(db, user_id)
    deleted = (user.id, user.email)
    db.delete(user)
    db.commit()
    logger.info("user deleted id=%s by user_id=%s", user_id, actor_id)
    return deleted


def list_users(
    db: Session,
    role: Optional[RoleEnum] = None,
    is_active: Optional[bool] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[User], int]:
    query = db.query(User)
    if role is not None:
        query = query.filter(User.role == role)
    if is_active is not None:
        query = query.filter(User.is_active == is_active)
    total = query.count()
    users = query.order_by(User.created_at.desc(), User.id.desc()).offset((max(page, 1) - 1) * limit).limit(limit).all()
    return users, total


def seed_admin(db: Session, hasher: PasswordHasher, s: Settings) -> Optional[User]:
    """Create the default admin account if it does not exist yet."""
    email = normalize_email(s.ADMIN_EMAIL)
    if db.query(User.id).filter(User.email == email).first() is not None:
        logger.info("admin user already exists email=%s", email)
        return None
    admin = User(
        name=s.ADMIN_NAME,
        email=email,
        hashed_password=hasher.hash(s.ADMIN_PASSWORD),
        role=RoleEnum.ADMIN,
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info("default admin user created email=%s", email)
    return admin
