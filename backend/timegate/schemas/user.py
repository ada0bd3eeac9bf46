from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import List, Optional
from datetime import datetime
from timegate.core.time_window import normalize_time_of_day
from timegate.models.user import RoleEnum
from timegate.schemas.auth import UserResponse

PHONE_PATTERN = r"^[0-9]{10,15}$"


class UserCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    password: str = Field(min_length=6, max_length=128)
    role: RoleEnum = RoleEnum.EMPLOYEE
    login_start_time: Optional[str] = None
    login_end_time: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def email_lower(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("phone", mode="before")
    @classmethod
    def validate_optional_string(cls, v):
        if v == "" or v is None:
            return None
        return v.strip() if isinstance(v, str) else v

    @field_validator("login_start_time", "login_end_time", mode="before")
    @classmethod
    def normalize_time(cls, v):
        if v is not None and not isinstance(v, str):
            raise ValueError("Time must be in HH:MM or HH:MM:SS format")
        return normalize_time_of_day(v)


class UserUpdate(BaseModel):
    """Partial update. An explicit null/"" on a window bound clears it."""
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    role: Optional[RoleEnum] = None
    login_start_time: Optional[str] = None
    login_end_time: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name", "role", "is_active", mode="before")
    @classmethod
    def reject_null(cls, v):
        # These columns are NOT NULL; omit the key to leave them unchanged
        if v is None:
            raise ValueError("Field may be omitted but not null")
        return v.strip() if isinstance(v, str) else v

    @field_validator("phone", mode="before")
    @classmethod
    def validate_optional_string(cls, v):
        if v == "" or v is None:
            return None
        return v.strip() if isinstance(v, str) else v

    @field_validator("login_start_time", "login_end_time", mode="before")
    @classmethod
    def normalize_time(cls, v):
        if v is not None and not isinstance(v, str):
            raise ValueError("Time must be in HH:MM or HH:MM:SS format")
        return normalize_time_of_day(v)


class ResetPasswordRequest(BaseModel):
    new_password: str = Field(min_length=6, max_length=128)


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_count: int
    limit: int


class UserListResponse(BaseModel):
    users: List[UserResponse]
    pagination: Pagination


class LoginSessionResponse(BaseModel):
    id: int
    user_id: int
    login_time: datetime
    logout_time: Optional[datetime] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    is_valid: bool

    model_config = ConfigDict(from_attributes=True)


class LoginHistoryResponse(BaseModel):
    sessions: List[LoginSessionResponse]
    pagination: Pagination


class LoginStatsResponse(BaseModel):
    total_logins: int
    logins_last_7_days: int
    logins_last_30_days: int
    last_login: Optional[datetime] = None


class DeletedUserResponse(BaseModel):
    id: int
    email: str
