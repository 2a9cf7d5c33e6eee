import pytest

from src.adapter.repositories.daily_usage_repository import DailyUsageRepository
from src.domain.base import local_today
from src.domain.entities import DailyUsageLimit, User


async def create_user(session) -> User:
    user = User(email="writer@example.com", username="writer", password_hash="x" * 60)
    session.add(user)
    await session.commit()
    return user


@pytest.mark.asyncio
async def test_get_or_create_inserts_first_row_of_day(db_session):
    user = await create_user(db_session)
    today = local_today("Asia/Ho_Chi_Minh")
    repository = DailyUsageRepository(db_session)

    usage = await repository.get_or_create(
        DailyUsageLimit(user_id=user.id, usage_date=today, daily_limit=50)
    )
    await db_session.commit()

    assert (await repository.get_for_day(user.id, today)).id == usage.id


@pytest.mark.asyncio
async def test_get_or_create_returns_row_of_concurrent_insert(db_session, session_factory):
    user = await create_user(db_session)
    today = local_today("Asia/Ho_Chi_Minh")
    winner = DailyUsageLimit(user_id=user.id, usage_date=today, daily_limit=50, total_usage=7)
    db_session.add(winner)
    await db_session.commit()

    # Another request that read "no row yet" before the winner committed
    async with session_factory() as other:
        usage = await DailyUsageRepository(other).get_or_create(
            DailyUsageLimit(user_id=user.id, usage_date=today, daily_limit=50)
        )

        assert usage.id == winner.id
        assert usage.total_usage == 7
