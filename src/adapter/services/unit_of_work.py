from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.repositories.audit_event_repository import AuditEventRepository
from src.adapter.repositories.daily_usage_repository import DailyUsageRepository
from src.adapter.repositories.rate_limit_config_repository import RateLimitConfigRepository
from src.adapter.repositories.session_repository import UserSessionRepository
from src.adapter.repositories.user_repository import UserRepository
from src.app.services.unit_of_work import UnitOfWork


class SqlAlchemyUnitOfWork(UnitOfWork):
    """SQLAlchemy implementation of UnitOfWork pattern"""

    def __init__(self, session: AsyncSession, close_on_exit: bool = False):
        self.session = session
        # Units of work built by a factory own their session; request-scoped ones do not
        self.close_on_exit = close_on_exit

    async def __aenter__(self):
        # Initialize all repositories with the session
        self.users = UserRepository(self.session)
        self.user_sessions = UserSessionRepository(self.session)
        self.rate_limit_configs = RateLimitConfigRepository(self.session)
        self.daily_usage = DailyUsageRepository(self.session)
        self.audit_events = AuditEventRepository(self.session)
        return self

    async def __aexit__(self, *args):
        await self.rollback()
        if self.close_on_exit:
            await self.session.close()

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()
