from abc import ABC, abstractmethod
from typing import List, Optional

from src.domain.entities import AuditEvent


class IAuditEventRepository(ABC):
    """AuditEvent repository interface - application layer"""

    @abstractmethod
    async def create(self, audit_event: AuditEvent) -> AuditEvent:
        """Create a new audit event (immutable)"""
        pass

    @abstractmethod
    async def list_recent(
        self, limit: int = 50, action: Optional[str] = None
    ) -> List[AuditEvent]:
        """Most recent audit events, newest first, optionally filtered by action"""
        pass
