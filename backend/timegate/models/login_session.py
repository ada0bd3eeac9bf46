from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from timegate.core.database import Base


class LoginSession(Base):
    """One login-to-logout span. logout_time stays null until the session is ended."""

    __tablename__ = "login_sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    login_time = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    logout_time = Column(DateTime(timezone=True), nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(512), nullable=True)
    is_valid = Column(Boolean, default=True, nullable=False)

    user = relationship("User", back_populates="sessions")

    __table_args__ = (Index("idx_login_sessions_user_login_time", "user_id", "login_time"),)
