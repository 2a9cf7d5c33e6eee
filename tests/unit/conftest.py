from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from src.app.services.audit_trail import AuditTrail
from src.app.services.rate_limit_config_provider import RateLimitConfigProvider
from src.app.use_cases.sessions import SessionManager
from src.app.use_cases.usage import RateLimiter
from src.app.use_cases.users import CurrentUser
from src.domain.entities import User, UserStatus
from tests.unit.fakes import FakeUnitOfWork, RecordingActivityTracker


@pytest.fixture
def mock_uow():
    """Mock UnitOfWork with the repositories used by the auth use cases"""
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=False)  # Must return False to not suppress exceptions
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()

    uow.users = MagicMock()
    uow.users.get_by_email = AsyncMock(return_value=None)
    uow.users.get_by_username = AsyncMock(return_value=None)
    uow.users.create = AsyncMock(side_effect=lambda user: user)
    uow.users.update = AsyncMock(side_effect=lambda user: user)

    return uow


@pytest.fixture
def fake_uow():
    return FakeUnitOfWork()


@pytest.fixture
def tracker():
    return RecordingActivityTracker()


@pytest.fixture
def audit_trail(fake_uow):
    return AuditTrail(lambda: fake_uow)


@pytest.fixture
def session_manager(fake_uow, tracker, audit_trail):
    return SessionManager(
        fake_uow,
        tracker,
        audit_trail,
        idle_timeout=timedelta(minutes=30),
        concurrent_window=timedelta(minutes=5),
        retention=timedelta(hours=24),
    )


@pytest.fixture
def config_provider():
    # ttl 0: every read sees the latest stored config
    return RateLimitConfigProvider(ttl_seconds=0)


@pytest.fixture
def rate_limiter(fake_uow, config_provider):
    return RateLimiter(fake_uow, config_provider, retry_after_seconds=3600)


@pytest_asyncio.fixture
async def user(fake_uow):
    entity = User(
        email="writer@example.com",
        username="writer",
        password_hash="x" * 60,
        status=UserStatus.active,
    )
    await fake_uow.users.create(entity)
    return CurrentUser.model_validate(entity)
