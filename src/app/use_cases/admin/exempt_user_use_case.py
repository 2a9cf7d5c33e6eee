"""
Use Case: Exempt User

Grant or revoke a user's exemption from the daily quota.
"""

import logging
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from libs.result import Error, Result, Return
from src.app.services.audit_trail import AuditTrail
from src.app.services.rate_limit_config_provider import RateLimitConfigProvider
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utc_now

logger = logging.getLogger(__name__)


class ExemptUserResponse(BaseModel):
    """Response DTO for ExemptUserUseCase"""

    user_id: UUID
    is_exempt: bool
    changed: bool
    version: int


class ExemptUserUseCase:
    """
    Business Rules:
    - Exempted users have no daily limit
    - The exemption list lives in the rate limit config; a change bumps its
      version and records the admin in last_updated_by
    - Setting the state a user already has changes nothing and is not audited
    - The cached policy is invalidated so the next request sees the change
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
        is_exempt: bool = True,
        reason: Optional[str] = None,
        actor: str = "admin",
    ) -> Result[ExemptUserResponse]:
        async with self.uow:
            user = await self.uow.users.get_by_id(user_id)
            if user is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))

            config = await self.config_provider.load_or_create(self.uow)
            exempted = list(config.exempted_user_ids or [])
            if (str(user_id) in exempted) == is_exempt:
                return Return.ok(
                    ExemptUserResponse(
                        user_id=user_id, is_exempt=is_exempt, changed=False, version=config.version
                    )
                )

            if is_exempt:
                exempted.append(str(user_id))
            else:
                exempted.remove(str(user_id))

            # JSON column: assign a new list so the change is flushed
            config.exempted_user_ids = exempted
            config.version += 1
            config.last_updated_by = actor
            config.updated_at = utc_now()
            config = await self.uow.rate_limit_configs.update(config)
            await self.uow.commit()
            version = config.version

        self.config_provider.invalidate()
        logger.info(
            f"User {user_id} {'exempted from' if is_exempt else 'returned to'} the daily limit by {actor}"
        )

        await self.audit_trail.record(
            "rate_limit_exemption_granted" if is_exempt else "rate_limit_exemption_revoked",
            reason or ("Exempted from the daily limit" if is_exempt else "Exemption revoked"),
            user_id=user_id,
            actor=actor,
            metadata={"version": version},
        )

        return Return.ok(
            ExemptUserResponse(user_id=user_id, is_exempt=is_exempt, changed=True, version=version)
        )
