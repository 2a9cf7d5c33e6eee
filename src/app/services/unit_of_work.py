from abc import ABC, abstractmethod

from src.app.repositories.audit_event_repository import IAuditEventRepository
from src.app.repositories.daily_usage_repository import IDailyUsageRepository
from src.app.repositories.rate_limit_config_repository import IRateLimitConfigRepository
from src.app.repositories.session_repository import IUserSessionRepository
from src.app.repositories.user_repository import IUserRepository


class UnitOfWork(ABC):
    """Abstract UnitOfWork - defines repository access and transaction management"""

    # Repository properties (initialized in __aenter__)
    users: IUserRepository
    user_sessions: IUserSessionRepository
    rate_limit_configs: IRateLimitConfigRepository
    daily_usage: IDailyUsageRepository
    audit_events: IAuditEventRepository

    @abstractmethod
    async def __aenter__(self):
        pass

    @abstractmethod
    async def __aexit__(self, *args):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass
