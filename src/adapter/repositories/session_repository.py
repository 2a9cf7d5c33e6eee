from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, func
from sqlmodel import select, update
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.session_repository import IUserSessionRepository
from src.domain.entities import LogoutReason, User, UserSession


class UserSessionRepository(IUserSessionRepository):
    """UserSession repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, session_obj: UserSession) -> UserSession:
        self.session.add(session_obj)
        await self.session.flush()
        await self.session.refresh(session_obj)
        return session_obj

    async def get_by_token_hash(self, token_hash: str) -> Optional[UserSession]:
        stmt = select(UserSession).where(
            UserSession.session_token_hash == token_hash
        ).execution_options(populate_existing=True)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def get_active_by_user_id(self, user_id: UUID) -> List[UserSession]:
        stmt = (
            select(UserSession)
            .where(UserSession.user_id == user_id, UserSession.is_active == True)
            .order_by(UserSession.last_activity.desc())
            .execution_options(populate_existing=True)
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def has_newer_active(self, user_id: UUID, login_at: datetime) -> bool:
        stmt = select(func.count(UserSession.id)).where(
            UserSession.user_id == user_id,
            UserSession.is_active == True,
            UserSession.login_at > login_at,
        )
        result = await self.session.exec(stmt)
        return (result.one() or 0) > 0

    def _deactivate_stmt(self, reason: LogoutReason, at: datetime):
        return (
            update(UserSession)
            .values(is_active=False, logout_at=at, logout_reason=reason)
            .execution_options(synchronize_session=False)
        )

    async def deactivate(self, session_id: UUID, reason: LogoutReason, at: datetime) -> bool:
        stmt = self._deactivate_stmt(reason, at).where(
            UserSession.id == session_id, UserSession.is_active == True
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0

    async def deactivate_all_by_user_id(
        self, user_id: UUID, reason: LogoutReason, at: datetime
    ) -> int:
        stmt = self._deactivate_stmt(reason, at).where(
            UserSession.user_id == user_id, UserSession.is_active == True
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount

    async def deactivate_older(
        self, user_id: UUID, login_at: datetime, reason: LogoutReason, at: datetime
    ) -> int:
        stmt = self._deactivate_stmt(reason, at).where(
            UserSession.user_id == user_id,
            UserSession.is_active == True,
            UserSession.login_at < login_at,
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount

    async def touch(self, session_id: UUID, at: datetime, api_calls: int = 0) -> bool:
        stmt = (
            update(UserSession)
            .where(UserSession.id == session_id, UserSession.is_active == True)
            .values(
                last_activity=at,
                total_api_calls=UserSession.total_api_calls + api_calls,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0

    async def delete_inactive_before(self, cutoff: datetime) -> int:
        stmt = delete(UserSession).where(
            UserSession.is_active == False,
            UserSession.last_activity < cutoff,
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount

    async def list_active_since(self, since: datetime) -> List[Tuple[UserSession, User]]:
        stmt = (
            select(UserSession, User)
            .join(User, User.id == UserSession.user_id)
            .where(UserSession.is_active == True, UserSession.last_activity >= since)
            .order_by(UserSession.last_activity.desc())
            .execution_options(populate_existing=True)
        )
        result = await self.session.exec(stmt)
        return [(row[0], row[1]) for row in result.all()]
