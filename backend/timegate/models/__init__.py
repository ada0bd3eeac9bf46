from timegate.models.user import User, RoleEnum
from timegate.models.login_session import LoginSession

__all__ = [
    "User",
    "RoleEnum",
    "LoginSession",
]
