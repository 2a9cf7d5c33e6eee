from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from src.domain.entities import LogoutReason, User, UserSession


class IUserSessionRepository(ABC):
    """
    UserSession repository interface - application layer

    Every deactivation is a conditional update on is_active=True, so two
    concurrent requests terminating the same row cannot both "win".
    """

    @abstractmethod
    async def create(self, session: UserSession) -> UserSession:
        """Create a new session"""
        pass

    @abstractmethod
    async def get_by_token_hash(self, token_hash: str) -> Optional[UserSession]:
        """Find the session for a token hash, active or not"""
        pass

    @abstractmethod
    async def get_active_by_user_id(self, user_id: UUID) -> List[UserSession]:
        """Active sessions for a user, most recent activity first"""
        pass

    @abstractmethod
    async def has_newer_active(self, user_id: UUID, login_at: datetime) -> bool:
        """True if the user has an active session with a strictly later login_at"""
        pass

    @abstractmethod
    async def deactivate(
        self, session_id: UUID, reason: LogoutReason, at: datetime
    ) -> bool:
        """Terminate one session. Returns True if it was still active."""
        pass

    @abstractmethod
    async def deactivate_all_by_user_id(
        self, user_id: UUID, reason: LogoutReason, at: datetime
    ) -> int:
        """Terminate all active sessions of a user. Returns count."""
        pass

    @abstractmethod
    async def deactivate_older(
        self, user_id: UUID, login_at: datetime, reason: LogoutReason, at: datetime
    ) -> int:
        """Terminate active sessions of a user with login_at before the given one"""
        pass

    @abstractmethod
    async def touch(self, session_id: UUID, at: datetime, api_calls: int = 0) -> bool:
        """Set last_activity and add api_calls to the counter of an active session"""
        pass

    @abstractmethod
    async def delete_inactive_before(self, cutoff: datetime) -> int:
        """Purge inactive sessions whose last_activity is older than cutoff"""
        pass

    @abstractmethod
    async def list_active_since(self, since: datetime) -> List[Tuple[UserSession, User]]:
        """Active sessions with last_activity at or after `since`, with their users, most recent first"""
        pass
