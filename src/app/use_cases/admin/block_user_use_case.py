"""
Use Case: Block / Unblock User

Administrative block of a user's usage for the current day.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from libs.result import Error, Result, Return
from src.app.services.audit_trail import AuditTrail
from src.app.services.rate_limit_config_provider import RateLimitConfigProvider
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import local_today, utc_now
from src.domain.entities import DailyUsageLimit


class BlockUserResponse(BaseModel):
    """Response DTO for BlockUserUseCase"""

    user_id: UUID
    is_blocked: bool
    block_reason: Optional[str]


class BlockUserUseCase:
    """
    Business Rules:
    - The block applies to today's usage row, created if the user has no
      usage yet today
    - Blocked users get ACCOUNT_BLOCKED on restricted modules until unblocked
      or until the day rolls over
    - Block and unblock are audit-logged
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
        self,
        user_id: UUID,
        is_blocked: bool,
        reason: Optional[str] = None,
        actor: str = "admin",
    ) -> Result[BlockUserResponse]:
        async with self.uow:
            user = await self.uow.users.get_by_id(user_id)
            if user is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))

            policy = await self.config_provider.get(self.uow)
            today = local_today(policy.timezone)
            usage = await self.uow.daily_usage.get_for_day(user_id, today)
            if usage is None:
                limit = policy.effective_daily_limit(user.id, user.subscription_type)
                usage = DailyUsageLimit(
                    user_id=user.id,
                    usage_date=today,
                    subscription_type=user.subscription_type,
                    daily_limit=limit if limit is not None else 0,
                )
                usage = await self.uow.daily_usage.get_or_create(usage)

            usage.is_blocked = is_blocked
            usage.block_reason = (reason or "Blocked by administrator") if is_blocked else None
            usage.blocked_at = utc_now() if is_blocked else None
            usage = await self.uow.daily_usage.update(usage)
            await self.uow.commit()

        await self.audit_trail.record(
            "account_blocked" if is_blocked else "account_unblocked",
            usage.block_reason or "Block lifted",
            user_id=user_id,
            actor=actor,
            metadata={"usage_date": today.isoformat()},
        )

        return Return.ok(
            BlockUserResponse(
                user_id=user_id,
                is_blocked=usage.is_blocked,
                block_reason=usage.block_reason,
            )
        )
