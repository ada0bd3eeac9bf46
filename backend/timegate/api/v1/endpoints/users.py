from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from timegate.api.v1.endpoints.auth import get_now, require_admin
from timegate.core.database import get_db
from timegate.core.security import PasswordHasher, get_password_hasher
from timegate.models.user import RoleEnum, User
from timegate.schemas.auth import MessageResponse, UserResponse
from timegate.schemas.user import (
    DeletedUserResponse,
    LoginHistoryResponse,
    LoginSessionResponse,
    LoginStatsResponse,
    Pagination,
    ResetPasswordRequest,
    UserListResponse,
    UserUpdate,
)
from timegate.services import auth_service
from timegate.services.session_tracker import SessionTracker

# Every route here is admin only
router = APIRouter(dependencies=[Depends(require_admin)])


def _pagination(page: int, limit: int, total: int) -> Pagination:
    return Pagination(
        current_page=page,
        total_pages=(total + limit - 1) // limit if limit else 0,
        total_count=total,
        limit=limit,
    )


@router.get("/", response_model=UserListResponse)
async def list_users(
    role: Optional[RoleEnum] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    users, total = auth_service.list_users(db, role=role, is_active=is_active, page=page, limit=limit)
    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in users],
        pagination=_pagination(page, limit, total),
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, db: Session = Depends(get_db)):
    return auth_service.get_user_or_404(db, user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(user_id: int, payload: UserUpdate, db: Session = Depends(get_db)):
    """Partial update; only fields present in the body are written."""
    return auth_service.update_user(db, user_id, payload.model_dump(exclude_unset=True))


@router.delete("/{user_id}", response_model=DeletedUserResponse)
async def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    deleted_id, email = auth_service.delete_user(db, current_user.id, user_id)
    return DeletedUserResponse(id=deleted_id, email=email)


@router.get("/{user_id}/login-history", response_model=LoginHistoryResponse)
async def get_login_history(
    user_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    auth_service.get_user_or_404(db, user_id)
    result = SessionTracker(db).list_sessions(user_id, page=page, limit=limit)
    return LoginHistoryResponse(
        sessions=[LoginSessionResponse.model_validate(s) for s in result.sessions],
        pagination=_pagination(result.page, result.limit, result.total),
    )


@router.get("/{user_id}/login-stats", response_model=LoginStatsResponse)
async def get_login_stats(user_id: int, db: Session = Depends(get_db), now=Depends(get_now)):
    auth_service.get_user_or_404(db, user_id)
    stats = SessionTracker(db).compute_stats(user_id, now=now)
    return LoginStatsResponse(
        total_logins=stats.total_logins,
        logins_last_7_days=stats.logins_last_7_days,
        logins_last_30_days=stats.logins_last_30_days,
        last_login=stats.last_login_time,
    )


@router.get("/{user_id}/active-sessions", response_model=List[LoginSessionResponse])
async def get_active_sessions(user_id: int, db: Session = Depends(get_db)):
    auth_service.get_user_or_404(db, user_id)
    return SessionTracker(db).get_active_sessions(user_id)


@router.post("/{user_id}/reset-password", response_model=MessageResponse)
async def reset_password(
    user_id: int,
    payload: ResetPasswordRequest,
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
):
    """Set a new password and close every open session of the user."""
    closed = await run_in_threadpool(auth_service.reset_password, db, hasher, user_id, payload.new_password)
    return MessageResponse(message=f"Password reset successfully; {closed} session(s) ended")
