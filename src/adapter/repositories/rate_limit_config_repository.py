from typing import Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.rate_limit_config_repository import IRateLimitConfigRepository
from src.domain.entities import RateLimitConfig


class RateLimitConfigRepository(IRateLimitConfigRepository):
    """RateLimitConfig repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_active(self) -> Optional[RateLimitConfig]:
        stmt = (
            select(RateLimitConfig)
            .where(RateLimitConfig.is_active == True)
            .order_by(RateLimitConfig.updated_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self.session.exec(stmt)
        return result.first()

    async def create(self, config: RateLimitConfig) -> RateLimitConfig:
        self.session.add(config)
        await self.session.flush()
        await self.session.refresh(config)
        return config

    async def update(self, config: RateLimitConfig) -> RateLimitConfig:
        self.session.add(config)
        await self.session.flush()
        await self.session.refresh(config)
        return config
