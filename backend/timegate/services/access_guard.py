"""
Per-request authorization pipeline.

Token validity alone never grants access: the user row is reloaded on every
request, so deactivating an account or leaving the employee's login window
takes effect before the token expires.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from timegate.core import errors
from timegate.core.errors import Forbidden, Unauthenticated
from timegate.core.logging_config import get_logger
from timegate.core.security import TokenExpiredError, TokenInvalidError, TokenService
from timegate.core.time_window import check_login_time
from timegate.models.user import RoleEnum, User

logger = get_logger("access_guard")

SESSION_EXPIRED_PREFIX = "Session expired: "


def enforce_login_window(user: User, now: Optional[datetime] = None, message_prefix: str = "") -> None:
    """Raise Forbidden when an employee is outside the stored window. Admins are never restricted."""
    if user.role != RoleEnum.EMPLOYEE:
        return
    result = check_login_time(user.login_start_time, user.login_end_time, now)
    if not result.allowed:
        logger.warning(
            "access denied outside window user_id=%s current_time=%s window=%s-%s",
            user.id, result.current_time, user.login_start_time, user.login_end_time,
        )
        raise errors.outside_window_error(
            message_prefix + result.message,
            result.current_time,
            user.login_start_time,
            user.login_end_time,
        )


class AccessGuard:
    def __init__(self, db: Session, token_service: TokenService):
        self.db = db
        self.token_service = token_service

    def authenticate(self, token: Optional[str], now: Optional[datetime] = None) -> User:
        if not token:
            raise Unauthenticated(errors.TOKEN_MISSING, "Access token required")

        try:
            claims = self.token_service.validate(token, now=now)
        except TokenExpiredError:
            logger.info("token rejected: expired")
            raise Unauthenticated(errors.TOKEN_EXPIRED, "Token has expired")
        except TokenInvalidError as e:
            logger.warning("token rejected: %s", e)
            raise Unauthenticated(errors.TOKEN_INVALID, "Invalid token")

        user = self.db.get(User, claims.user_id)
        if user is None:
            # Deleted accounts look like any other bad token
            logger.warning("token subject not found user_id=%s", claims.user_id)
            raise Unauthenticated(errors.UNKNOWN_SUBJECT, "Invalid token")

        if not user.is_active:
            logger.warning("access denied: deactivated user_id=%s", user.id)
            raise Forbidden(errors.ACCOUNT_DEACTIVATED, "Account has been deactivated")

        # A live token is being cut off, not a login being refused
        enforce_login_window(user, now, message_prefix=SESSION_EXPIRED_PREFIX)
        return user

    @staticmethod
    def require_role(user: User, role: RoleEnum) -> User:
        if user.role != role:
            logger.warning("access denied: user_id=%s role=%s required=%s", user.id, user.role, role.value)
            raise Forbidden(errors.INSUFFICIENT_ROLE, f"{role.value.capitalize()} access required")
        return user
