"""
UserSession Entity

One authenticated device/browser instance.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from src.domain.base import utc_now
from .enums import LogoutReason


class UserSession(SQLModel, table=True):
    """
    UserSession entity - one login instance identified by an opaque token.

    Business Rules:
    - At most one active session per user at steady state
    - The raw token is handed to the client once; only its SHA-256 is stored
    - Terminal states collapse to is_active=False with a logout_reason
    - Inactive rows are purged 24h after their last activity
    """

    __tablename__ = "user_sessions"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)

    session_token_hash: str = Field(unique=True, index=True, max_length=64)
    is_active: bool = Field(default=True)

    ip_address: Optional[str] = Field(default=None, max_length=45)
    user_agent: Optional[str] = Field(default=None, max_length=512)

    login_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime, nullable=False))
    last_activity: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime, nullable=False))
    logout_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    logout_reason: Optional[LogoutReason] = Field(default=None)

    total_api_calls: int = Field(default=0)

    __table_args__ = (
        Index("idx_user_session_user_active", "user_id", "is_active"),
        Index("idx_user_session_last_activity", "last_activity"),
        Index("idx_user_session_login_at", "login_at"),
    )

    def idle_for(self, now: datetime):
        return now - self.last_activity
