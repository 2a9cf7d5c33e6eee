"""
Use Case: Update Rate-Limit Config

Partial update of the active configuration by an administrator. The merged
result is validated as a whole before anything is written.
"""

import logging
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, ValidationError

from libs.result import Error, Result, Return
from src.app.services.audit_trail import AuditTrail
from src.app.services.rate_limit_config_provider import RateLimitConfigProvider
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utc_now
from src.domain.entities import (
    BurstSettings,
    RateLimitPolicy,
    RestrictedModule,
    SubscriptionLimit,
    WarningThreshold,
)
from .get_rate_limit_config_use_case import RateLimitConfigResponse

logger = logging.getLogger(__name__)


class UpdateRateLimitConfigCommand(BaseModel):
    """Only the fields that are set are changed"""

    is_enabled: Optional[bool] = None
    daily_limit: Optional[int] = Field(default=None, ge=0)
    timezone: Optional[str] = None
    restricted_modules: Optional[List[RestrictedModule]] = None
    subscription_limits: Optional[List[SubscriptionLimit]] = None
    exempted_user_ids: Optional[List[str]] = None
    burst: Optional[BurstSettings] = None
    warning_thresholds: Optional[List[WarningThreshold]] = None
    maintenance_mode: Optional[bool] = None
    maintenance_message: Optional[str] = None
    retention_days: Optional[int] = Field(default=None, ge=1)


class UpdateRateLimitConfigUseCase:
    """
    Business Rules:
    - Unset fields keep their current value
    - The timezone must be a known IANA zone
    - version increments and last_updated_by records the admin
    - The cached policy is invalidated so the next request sees the change
    - Every update is audit-logged with the names of the changed fields
    """

    def __init__(
        self,
        uow: UnitOfWork,
        config_provider: RateLimitConfigProvider,
        audit_trail: AuditTrail,
    ):
        self.uow = uow
        self.config_provider = config_provider
        self.audit_trail = audit_trail

    async def execute(
        self, command: UpdateRateLimitConfigCommand, updated_by: str = "admin"
    ) -> Result[RateLimitConfigResponse]:
        changes = command.model_dump(exclude_unset=True)

        if command.timezone is not None:
            try:
                ZoneInfo(command.timezone)
            except (ZoneInfoNotFoundError, ValueError):
                return Return.err(
                    Error("INVALID_CONFIG", f"Unknown timezone: {command.timezone}")
                )

        async with self.uow:
            config = await self.config_provider.load_or_create(self.uow)

            try:
                policy = RateLimitPolicy.model_validate(
                    {**config.to_policy().model_dump(), **changes}
                )
            except ValidationError as e:
                return Return.err(
                    Error("INVALID_CONFIG", "Invalid rate limit configuration", {"errors": e.errors(include_url=False, include_context=False, include_input=False)})
                )

            config.apply_policy(policy)
            config.version += 1
            config.last_updated_by = updated_by
            config.updated_at = utc_now()
            config = await self.uow.rate_limit_configs.update(config)
            await self.uow.commit()

        self.config_provider.invalidate()
        logger.info(f"Rate limit config updated to version {config.version} by {updated_by}")

        await self.audit_trail.record(
            "rate_limit_config_updated",
            f"Rate limit config updated to version {config.version}",
            actor=updated_by,
            metadata={"changed_fields": sorted(changes), "version": config.version},
        )

        return Return.ok(RateLimitConfigResponse.from_config(config))
