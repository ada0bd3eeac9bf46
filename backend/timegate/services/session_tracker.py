"""
Login session bookkeeping: one row per successful login, closed on logout.

Several open sessions per user are allowed; logout closes the most recent one.
All timestamps are written in UTC.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import and_
from sqlalchemy.orm import Session

from timegate.core.errors import NotFound, USER_NOT_FOUND
from timegate.core.logging_config import get_logger
from timegate.models.login_session import LoginSession
from timegate.models.user import User

logger = get_logger("session_tracker")

USER_AGENT_MAX_LENGTH = 512


@dataclass
class SessionPage:
    sessions: List[LoginSession]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit


@dataclass
class LoginStats:
    total_logins: int
    logins_last_7_days: int
    logins_last_30_days: int
    last_login_time: Optional[datetime]


def _utc(now: Optional[datetime] = None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


class SessionTracker:
    def __init__(self, db: Session):
        self.db = db

    def start_session(
        self,
        user_id: int,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> LoginSession:
        if self.db.get(User, user_id) is None:
            raise NotFound(USER_NOT_FOUND, "User not found")

        session = LoginSession(
            user_id=user_id,
            login_time=_utc(now),
            ip_address=ip_address or None,
            user_agent=(user_agent or "")[:USER_AGENT_MAX_LENGTH] or None,
            is_valid=True,
        )
        self.db.add(session)
        self.db.commit()
        self.db.refresh(session)
        logger.info("session started id=%s user_id=%s ip=%s", session.id, user_id, ip_address)
        return session

    def end_session(self, user_id: int, now: Optional[datetime] = None) -> Optional[LoginSession]:
        """Close the newest open session of the user. Returns None when nothing is open."""
        session = self.db.query(LoginSession).filter(
            and_(
                LoginSession.user_id == user_id,
                LoginSession.logout_time.is_(None),
            )
        ).order_by(LoginSession.login_time.desc(), LoginSession.id.desc()).first()

        if session is None:
            logger.debug("end_session: no open session for user_id=%s", user_id)
            return None

        # Conditional update so a concurrent logout cannot close the same row twice
        updated = self.db.query(LoginSession).filter(
            and_(
                LoginSession.id == session.id,
                LoginSession.logout_time.is_(None),
            )
        ).update(
            {LoginSession.logout_time: _utc(now), LoginSession.is_valid: False},
            synchronize_session=False,
        )
        self.db.commit()

        if not updated:
            logger.info("end_session: session id=%s already closed", session.id)
            return None

        self.db.refresh(session)
        logger.info("session ended id=%s user_id=%s", session.id, user_id)
        return session

    def end_all_sessions(self, user_id: int, now: Optional[datetime] = None) -> int:
        count = self.db.query(LoginSession).filter(
            and_(
                LoginSession.user_id == user_id,
                LoginSession.is_valid == True,
            )
        ).update(
            {LoginSession.logout_time: _utc(now), LoginSession.is_valid: False},
            synchronize_session=False,
        )
        self.db.commit()
        logger.info("invalidated %s session(s) for user_id=%s", count, user_id)
        return count

    def get_active_sessions(self, user_id: int) -> List[LoginSession]:
        return self.db.query(LoginSession).filter(
            and_(
                LoginSession.user_id == user_id,
                LoginSession.is_valid == True,
                LoginSession.logout_time.is_(None),
            )
        ).order_by(LoginSession.login_time.desc(), LoginSession.id.desc()).all()

    def list_sessions(self, user_id: int, page: int = 1, limit: int = 20) -> SessionPage:
        page = max(page, 1)
        query = self.db.query(LoginSession).filter(LoginSession.user_id == user_id)
        total = query.count()
        sessions = query.order_by(
            LoginSession.login_time.desc(), LoginSession.id.desc()
        ).offset((page - 1) * limit).limit(limit).all()
        return SessionPage(sessions=sessions, total=total, page=page, limit=limit)

    def compute_stats(self, user_id: int, now: Optional[datetime] = None) -> LoginStats:
        now = _utc(now)
        query = self.db.query(LoginSession).filter(LoginSession.user_id == user_id)

        last = query.order_by(LoginSession.login_time.desc()).first()
        return LoginStats(
            total_logins=query.count(),
            logins_last_7_days=query.filter(LoginSession.login_time >= now - timedelta(days=7)).count(),
            logins_last_30_days=query.filter(LoginSession.login_time >= now - timedelta(days=30)).count(),
            last_login_time=last.login_time if last else None,
        )

    def purge_older_than(self, days: int = 90, now: Optional[datetime] = None) -> int:
        """Delete sessions whose login_time is before now - days. Irreversible."""
        if days < 0:
            raise ValueError("days must not be negative")
        cutoff = _utc(now) - timedelta(days=days)
        count = self.db.query(LoginSession).filter(
            LoginSession.login_time < cutoff
        ).delete(synchronize_session=False)
        self.db.commit()
        logger.info("purged %s session(s) older than %s days", count, days)
        return count
