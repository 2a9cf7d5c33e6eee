"""
List Audit Events Use Case

Most recent session and quota enforcement events, for administrators.
"""

from typing import Any, Dict, Optional

from libs.result import Result, Return
from src.app.services.unit_of_work import UnitOfWork


class ListAuditEventsUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(
        self, limit: int = 50, action: Optional[str] = None
    ) -> Result[Dict[str, Any]]:
        async with self.uow:
            events = await self.uow.audit_events.list_recent(limit=limit, action=action)

            return Return.ok(
                {
                    "events": [
                        {
                            "id": str(event.id),
                            "action": event.action,
                            "actor": event.actor,
                            "user_id": str(event.user_id) if event.user_id else None,
                            "description": event.description,
                            "timestamp": event.created_at.isoformat() + "Z",
                            "metadata": event.event_metadata or {},
                        }
                        for event in events
                    ]
                }
            )
