from typing import Callable, Optional

from fastapi import BackgroundTasks, Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from libs.result import Error
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.api.error import ClientError
from src.api.utils.jwt import verify_jwt
from src.app.services.activity_tracker import ActivityTracker, BackgroundActivityTracker
from src.app.services.audit_trail import AuditTrail
from src.app.services.rate_limit_config_provider import RateLimitConfigProvider
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.sessions import SessionManager
from src.app.use_cases.usage import RateLimiter

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

security = HTTPBearer(auto_error=False)

# Process-wide: the cached policy must survive across requests
rate_limit_config_provider = RateLimitConfigProvider(
    ttl_seconds=ApplicationConfig.RATE_LIMIT_CONFIG_TTL_SECONDS
)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)


def get_uow_factory() -> Callable[[], UnitOfWork]:
    """Builds independent units of work for writes that outlive the request transaction."""

    def factory() -> UnitOfWork:
        return SqlAlchemyUnitOfWork(AsyncSessionLocal(), close_on_exit=True)

    return factory


def get_rate_limit_config_provider() -> RateLimitConfigProvider:
    return rate_limit_config_provider


def get_audit_trail(
    uow_factory: Callable[[], UnitOfWork] = Depends(get_uow_factory),
) -> AuditTrail:
    return AuditTrail(uow_factory)


def get_activity_tracker(
    background_tasks: BackgroundTasks,
    uow_factory: Callable[[], UnitOfWork] = Depends(get_uow_factory),
) -> ActivityTracker:
    return BackgroundActivityTracker(background_tasks.add_task, uow_factory)


def get_session_manager(
    uow: UnitOfWork = Depends(get_unit_of_work),
    activity_tracker: ActivityTracker = Depends(get_activity_tracker),
    audit_trail: AuditTrail = Depends(get_audit_trail),
) -> SessionManager:
    return SessionManager(uow, activity_tracker, audit_trail)


def get_rate_limiter(
    uow: UnitOfWork = Depends(get_unit_of_work),
    config_provider: RateLimitConfigProvider = Depends(get_rate_limit_config_provider),
) -> RateLimiter:
    return RateLimiter(uow, config_provider)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """
    Dependency to extract and verify JWT token from Authorization header.

    Args:
        credentials: Bearer token from Authorization header

    Returns:
        Decoded JWT payload containing user_id

    Raises:
        ClientError: 401 if token is missing, invalid or expired
    """
    if credentials is None:
        raise ClientError(
            Error("UNAUTHORIZED", "Authentication required"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    payload = verify_jwt(credentials.credentials)

    if payload is None or "user_id" not in payload:
        raise ClientError(
            Error("INVALID_TOKEN", "Invalid or expired token"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    return payload
