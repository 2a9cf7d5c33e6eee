"""
Session Activity Tracking

Validation hands the activity write (last_activity, total_api_calls) to an
ActivityTracker instead of performing it inline. The response does not wait
for the write; failures are logged on the tracker's side and never reach the
request path.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable
from uuid import UUID

from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utc_now

logger = logging.getLogger(__name__)


class ActivityTracker(ABC):
    @abstractmethod
    def track(self, session_id: UUID) -> None:
        """Schedule an activity write for a session. Must not raise."""
        pass


class BackgroundActivityTracker(ActivityTracker):
    """
    Dispatches activity writes through a scheduling callable.

    In the API layer `schedule` is `BackgroundTasks.add_task`, so the write
    runs after the response has been sent, with its own unit of work.
    """

    def __init__(
        self,
        schedule: Callable[..., Any],
        uow_factory: Callable[[], UnitOfWork],
    ):
        self.schedule = schedule
        self.uow_factory = uow_factory
        self.failures = 0

    def track(self, session_id: UUID) -> None:
        try:
            self.schedule(self.write, session_id, utc_now())
        except Exception:
            self.failures += 1
            logger.exception(f"Could not schedule activity write for session {session_id}")

    async def write(self, session_id: UUID, at: datetime) -> None:
        try:
            async with self.uow_factory() as uow:
                updated = await uow.user_sessions.touch(session_id, at, api_calls=1)
                await uow.commit()
            if not updated:
                logger.debug(f"Session {session_id} no longer active, activity not recorded")
        except Exception:
            self.failures += 1
            logger.exception(f"Activity write failed for session {session_id}")


class NullActivityTracker(ActivityTracker):
    """Discards activity writes. For session managers that never validate requests."""

    def track(self, session_id: UUID) -> None:
        pass
