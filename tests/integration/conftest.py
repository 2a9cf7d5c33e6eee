import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

import src.domain.entities  # noqa: F401  registers tables on SQLModel.metadata
from tests.fixtures.json_loader import TestDataLoader
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.rate_limit_config_provider import RateLimitConfigProvider
from src.depends import (
    get_rate_limit_config_provider,
    get_session,
    get_unit_of_work,
    get_uow_factory,
)


@pytest_asyncio.fixture
def test_data():
    return TestDataLoader()


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///./test.db")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
def uow_factory(session_factory):
    return lambda: SqlAlchemyUnitOfWork(session_factory(), close_on_exit=True)


@pytest_asyncio.fixture
def app(db_session, uow_factory):
    from src.api.app import create_app
    from config import ApplicationConfig

    app = create_app(ApplicationConfig)

    # Fresh cache per test; the admin routes invalidate this same instance
    config_provider = RateLimitConfigProvider(ttl_seconds=30)

    async def override_get_unit_of_work():
        yield SqlAlchemyUnitOfWork(db_session)

    def override_get_uow_factory():
        return uow_factory

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_unit_of_work] = override_get_unit_of_work
    app.dependency_overrides[get_uow_factory] = override_get_uow_factory
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_rate_limit_config_provider] = lambda: config_provider
    return app


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
