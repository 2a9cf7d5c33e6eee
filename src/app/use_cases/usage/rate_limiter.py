"""
Rate Limiter

Weighted daily quota per user with optional burst allowance, one-shot
warning thresholds, maintenance mode and administrative blocking.

Any unexpected failure inside check_and_record lets the request through
(fail-open): availability of the product is preferred over exact quota
enforcement.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from config import ApplicationConfig
from libs.result import Error, Result, Return
from src.app.services.rate_limit_config_provider import RateLimitConfigProvider
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.users.dtos import CurrentUser
from src.domain.base import local_today, utc_now
from src.domain.entities import (
    DailyUsageLimit,
    ModuleUsage,
    RateLimitPolicy,
    usage_percentage,
)
from .dtos import (
    ModuleInfo,
    ModuleUsageInfo,
    ResetDailyUsageResponse,
    UsageDecision,
    UsageHistoryEntry,
    UsageSnapshot,
    UsageStatus,
    UsageWarning,
    UserUsageReport,
)

logger = logging.getLogger(__name__)

LIMIT_SUGGESTIONS = [
    "Your quota resets at midnight. Please come back tomorrow.",
    "Upgrade your subscription for a higher daily limit.",
]


class RateLimiter:
    """
    Business Rules:
    - Only active restricted modules count; each request costs the module weight
    - Effective limit: exempted users are unlimited, then the subscription tier
      (null = unlimited), then the default daily_limit
    - One usage row per user per calendar day in the configured timezone
    - A request is allowed while total_usage + weight <= limit; beyond that
      only the burst allowance can admit it
    - Each warning threshold is issued once per day, lowest first
    """

    def __init__(
        self,
        uow: UnitOfWork,
        config_provider: RateLimitConfigProvider,
        retry_after_seconds: int = ApplicationConfig.MAINTENANCE_RETRY_AFTER_SECONDS,
    ):
        self.uow = uow
        self.config_provider = config_provider
        self.retry_after_seconds = retry_after_seconds

    async def check_and_record(
        self,
        user: CurrentUser,
        module_id: str,
        module_name: str,
        module_weight: Optional[int] = None,
    ) -> Result[UsageDecision]:
        """
        Decide whether a request may proceed and, if so, record its usage.

        Errors:
            - SERVICE_MAINTENANCE: maintenance mode is on
            - ACCOUNT_BLOCKED: today's usage row is blocked by an admin
            - DAILY_LIMIT_EXCEEDED: quota and burst allowance are exhausted
        """
        try:
            return await self._check_and_record(user, module_id, module_name, module_weight)
        except Exception:
            logger.exception(
                f"Rate limit check failed for user {user.id} on module {module_id}, allowing request"
            )
            return Return.ok(
                UsageDecision(
                    tracked=False,
                    module=ModuleInfo(
                        id=module_id,
                        name=module_name,
                        weight=module_weight if module_weight is not None else 1,
                    ),
                )
            )

    async def _check_and_record(
        self,
        user: CurrentUser,
        module_id: str,
        module_name: str,
        module_weight: Optional[int],
    ) -> Result[UsageDecision]:
        async with self.uow:
            policy = await self.config_provider.get(self.uow)

            weight = module_weight if module_weight is not None else policy.module_weight(module_id)
            module = ModuleInfo(id=module_id, name=module_name, weight=weight)

            if not policy.is_enabled or not policy.is_module_restricted(module_id):
                return Return.ok(UsageDecision(tracked=False, module=module))

            if policy.maintenance_mode:
                return Return.err(
                    Error(
                        "SERVICE_MAINTENANCE",
                        policy.maintenance_message,
                        {"retryAfter": self.retry_after_seconds},
                    )
                )

            limit = policy.effective_daily_limit(user.id, user.subscription_type)
            if limit is None:
                return Return.ok(
                    UsageDecision(
                        tracked=False,
                        module=module,
                        usage=UsageSnapshot(current=0, limit=None, remaining=None, percentage=0),
                    )
                )

            now = utc_now()
            usage = await self._get_or_create_today(user, limit, policy)

            if usage.is_blocked:
                return Return.err(
                    Error(
                        "ACCOUNT_BLOCKED",
                        "Your account has been temporarily blocked from using this feature.",
                        {
                            "usage": self._snapshot(usage).model_dump(),
                            "blockInfo": {
                                "reason": usage.block_reason,
                                "blockedAt": usage.blocked_at.isoformat() if usage.blocked_at else None,
                            },
                        },
                    )
                )

            projected = usage.total_usage + weight
            burst_used = False
            if projected > limit:
                if policy.burst.is_enabled and usage.try_consume_burst(weight, policy.burst, now):
                    burst_used = True
                else:
                    logger.info(
                        f"Daily limit reached for user {user.id}: {usage.total_usage}/{limit}, module {module_id} weight {weight}"
                    )
                    return Return.err(
                        Error(
                            "DAILY_LIMIT_EXCEEDED",
                            f"You have reached your daily limit of {limit} requests.",
                            {
                                "usage": self._snapshot(usage).model_dump(),
                                "module": module.model_dump(),
                                "suggestions": LIMIT_SUGGESTIONS,
                                "timezone": policy.timezone,
                            },
                        )
                    )

            warnings: List[UsageWarning] = []
            percent = usage_percentage(projected, limit)
            for threshold in policy.active_thresholds():
                if percent >= threshold.percentage and usage.add_warning(
                    threshold.percentage, threshold.message, now
                ):
                    warnings.append(
                        UsageWarning(percentage=threshold.percentage, message=threshold.message)
                    )

            usage = await self.uow.daily_usage.add_usage(usage, module_id, module_name, weight, now)
            await self.uow.commit()

        if burst_used:
            logger.info(f"Burst allowance used by user {user.id}: {usage.current_burst}/{policy.burst.burst_limit}")

        return Return.ok(
            UsageDecision(
                tracked=True,
                module=module,
                usage=self._snapshot(usage),
                warnings=warnings,
                burst_used=burst_used,
            )
        )

    async def get_usage_status(self, user: CurrentUser) -> Result[UsageStatus]:
        """Read-only snapshot of today's quota position."""
        async with self.uow:
            policy = await self.config_provider.get(self.uow)
            limit = policy.effective_daily_limit(user.id, user.subscription_type)
            today = local_today(policy.timezone)
            usage = await self.uow.daily_usage.get_for_day(user.id, today)

            if usage is None:
                return Return.ok(
                    UsageStatus(
                        date=today,
                        timezone=policy.timezone,
                        subscription_type=user.subscription_type,
                        usage=UsageSnapshot(
                            current=0, limit=limit, remaining=limit, percentage=0
                        ),
                    )
                )

            modules = await self.uow.daily_usage.get_module_usage(usage.id)

            if limit is None:
                snapshot = UsageSnapshot(
                    current=usage.total_usage, limit=None, remaining=None, percentage=0
                )
            else:
                snapshot = self._snapshot(usage)

            return Return.ok(
                UsageStatus(
                    date=today,
                    timezone=policy.timezone,
                    subscription_type=usage.subscription_type,
                    usage=snapshot,
                    is_blocked=usage.is_blocked,
                    block_reason=usage.block_reason,
                    module_usage=[self._module_info(m) for m in modules],
                    warnings_issued=usage.issued_percentages(),
                )
            )

    async def reset_daily_usage(self) -> Result[ResetDailyUsageResponse]:
        """Retention sweep: delete usage rows older than retention_days."""
        async with self.uow:
            policy = await self.config_provider.get(self.uow)
            cutoff = local_today(policy.timezone) - timedelta(days=policy.retention_days)
            deleted = await self.uow.daily_usage.delete_before(cutoff)
            await self.uow.commit()

        logger.info(f"Deleted {deleted} daily usage row(s) before {cutoff.isoformat()}")
        return Return.ok(ResetDailyUsageResponse(deleted_rows=deleted, cutoff_date=cutoff))

    async def detect_potential_sharing(
        self, days: int = 7, threshold: float = 0.85
    ) -> Result[List[Dict[str, Any]]]:
        """Users whose average daily usage ratio over the window is at least `threshold`."""
        async with self.uow:
            policy = await self.config_provider.get(self.uow)
            since = local_today(policy.timezone) - timedelta(days=days)
            heavy_users = await self.uow.daily_usage.get_heavy_users(since, threshold)

        if heavy_users:
            logger.info(f"{len(heavy_users)} heavy user(s) over the last {days} days")
        return Return.ok(heavy_users)

    async def get_usage_stats(self, days: int = 7) -> Result[List[Dict[str, Any]]]:
        async with self.uow:
            policy = await self.config_provider.get(self.uow)
            until = local_today(policy.timezone)
            since = until - timedelta(days=days - 1)
            stats = await self.uow.daily_usage.get_daily_stats(since, until)

        return Return.ok(stats)

    async def get_usage_history(self, user_id: UUID, days: int = 7) -> Result[List[UsageHistoryEntry]]:
        """Usage rows of the last `days` calendar days, today included, newest first."""
        async with self.uow:
            policy = await self.config_provider.get(self.uow)
            until = local_today(policy.timezone)
            since = until - timedelta(days=days - 1)
            rows = await self.uow.daily_usage.list_for_user(user_id, since, until)

            history = []
            for usage in rows:
                modules = await self.uow.daily_usage.get_module_usage(usage.id)
                history.append(
                    UsageHistoryEntry(
                        date=usage.usage_date,
                        request_count=usage.total_usage,
                        daily_limit=usage.daily_limit,
                        is_blocked=usage.is_blocked,
                        module_usage=[self._module_info(m) for m in modules],
                    )
                )

        return Return.ok(history)

    async def get_user_usage(self, user_id: UUID, days: int = 7) -> Result[UserUsageReport]:
        async with self.uow:
            user = await self.uow.users.get_by_id(user_id)
            if user is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))
            current_user = CurrentUser.model_validate(user)

        status = await self.get_usage_status(current_user)
        if status.is_err():
            return status
        history = await self.get_usage_history(user_id, days)
        if history.is_err():
            return history

        return Return.ok(
            UserUsageReport(
                user_id=current_user.id,
                username=current_user.username,
                email=current_user.email,
                current_status=status.value,
                history=history.value,
            )
        )

    async def get_module_stats(self, days: int = 7) -> Result[Dict[str, Any]]:
        async with self.uow:
            policy = await self.config_provider.get(self.uow)
            until = local_today(policy.timezone)
            since = until - timedelta(days=days - 1)
            modules = await self.uow.daily_usage.get_module_stats(since, until)

        return Return.ok(
            {
                "days": days,
                "period_start": since.isoformat(),
                "period_end": until.isoformat(),
                "modules": modules,
            }
        )

    async def _get_or_create_today(
        self, user: CurrentUser, limit: int, policy: RateLimitPolicy
    ) -> DailyUsageLimit:
        today = local_today(policy.timezone)
        usage = await self.uow.daily_usage.get_for_day(user.id, today)

        if usage is None:
            # A concurrent first request of the day may insert first; its row is kept
            usage = await self.uow.daily_usage.get_or_create(
                DailyUsageLimit(
                    user_id=user.id,
                    usage_date=today,
                    subscription_type=user.subscription_type,
                    daily_limit=limit,
                    last_activity=utc_now(),
                )
            )
            await self.uow.commit()

        if usage.daily_limit != limit or usage.subscription_type != user.subscription_type:
            # Tier or config changed during the day
            usage.daily_limit = limit
            usage.subscription_type = user.subscription_type
        return usage

    @staticmethod
    def _module_info(module: ModuleUsage) -> ModuleUsageInfo:
        return ModuleUsageInfo(
            module_id=module.module_id,
            module_name=module.module_name,
            request_count=module.request_count,
            weighted_usage=module.weighted_usage,
        )

    @staticmethod
    def _snapshot(usage: DailyUsageLimit) -> UsageSnapshot:
        return UsageSnapshot(
            current=usage.total_usage,
            limit=usage.daily_limit,
            remaining=usage.remaining_quota(),
            percentage=usage.usage_percentage(),
        )
