"""
Audit Trail

Append-only record of concurrent-login detections, forced logouts and
block events. Writes go through their own unit of work so a failing audit
insert never rolls back, or fails, the operation that triggered it.
"""

import logging
from typing import Callable, Optional
from uuid import UUID

from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("audit")


class AuditTrail:
    def __init__(self, uow_factory: Callable[[], UnitOfWork]):
        self.uow_factory = uow_factory

    async def record(
        self,
        action: str,
        description: str,
        user_id: Optional[UUID] = None,
        actor: str = "system",
        metadata: Optional[dict] = None,
    ) -> None:
        audit_logger.info(
            f"AUDIT: {action} by {actor}: {description}",
            extra={"audit": {"action": action, "actor": actor, "user_id": str(user_id) if user_id else None}},
        )
        try:
            async with self.uow_factory() as uow:
                await uow.audit_events.create(
                    AuditEvent(
                        user_id=user_id,
                        actor=actor,
                        action=action,
                        description=description,
                        event_metadata=metadata,
                    )
                )
                await uow.commit()
        except Exception:
            logger.exception(f"Failed to write audit event {action}")
