"""
Use Case: Get Online Stats

Counts of active sessions by how recently they were used.
"""

from datetime import timedelta

from config import ApplicationConfig
from libs.result import Result, Return
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utc_now
from .dtos import OnlineStatsResponse


class GetOnlineStatsUseCase:
    """
    Business Rules:
    - Only active sessions count; a session counts in every window its
      last_activity falls into
    - Average duration is login to now over the sessions of the last 24 hours
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(self) -> Result[OnlineStatsResponse]:
        now = utc_now()
        online_since = now - timedelta(minutes=ApplicationConfig.ONLINE_WINDOW_MINUTES)
        hour_since = now - timedelta(hours=1)

        async with self.uow:
            rows = await self.uow.user_sessions.list_active_since(now - timedelta(hours=24))
            activity = [(session.login_at, session.last_activity) for session, _ in rows]

        durations = [(now - login_at).total_seconds() / 60 for login_at, _ in activity]

        return Return.ok(
            OnlineStatsResponse(
                current_online=sum(1 for _, last in activity if last >= online_since),
                active_last_hour=sum(1 for _, last in activity if last >= hour_since),
                active_last_24_hours=len(activity),
                avg_session_duration_minutes=round(sum(durations) / len(durations)) if durations else 0,
                timestamp=now,
            )
        )
