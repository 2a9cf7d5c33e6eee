"""
Use Case: Get Rate-Limit Config

Admin view of the active rate-limit configuration, created with defaults
on first read.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel

from libs.result import Result, Return
from src.app.services.rate_limit_config_provider import RateLimitConfigProvider
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import (
    BurstSettings,
    RateLimitConfig,
    RestrictedModule,
    SubscriptionLimit,
    WarningThreshold,
)


class RateLimitConfigResponse(BaseModel):
    """Response DTO for rate-limit config reads and updates"""

    is_enabled: bool
    daily_limit: int
    timezone: str
    restricted_modules: List[RestrictedModule]
    subscription_limits: List[SubscriptionLimit]
    exempted_user_ids: List[str]
    burst: BurstSettings
    warning_thresholds: List[WarningThreshold]
    maintenance_mode: bool
    maintenance_message: str
    retention_days: int
    version: int
    last_updated_by: str
    updated_at: datetime

    @classmethod
    def from_config(cls, config: RateLimitConfig) -> "RateLimitConfigResponse":
        policy = config.to_policy()
        return cls(
            **policy.model_dump(),
            last_updated_by=config.last_updated_by,
            updated_at=config.updated_at,
        )


class GetRateLimitConfigUseCase:
    def __init__(self, uow: UnitOfWork, config_provider: RateLimitConfigProvider):
        self.uow = uow
        self.config_provider = config_provider

    async def execute(self) -> Result[RateLimitConfigResponse]:
        async with self.uow:
            config = await self.config_provider.load_or_create(self.uow)
            return Return.ok(RateLimitConfigResponse.from_config(config))
