"""
Use Case: List Online Users

Users with an active session whose last activity falls inside the online
window.
"""

from collections import Counter
from datetime import timedelta

from config import ApplicationConfig
from libs.result import Result, Return
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utc_now
from .dtos import OnlineSessionInfo, OnlineSummary, OnlineUser, OnlineUsersResponse


class ListOnlineUsersUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(
        self, window_minutes: int = ApplicationConfig.ONLINE_WINDOW_MINUTES
    ) -> Result[OnlineUsersResponse]:
        now = utc_now()

        async with self.uow:
            rows = await self.uow.user_sessions.list_active_since(
                now - timedelta(minutes=window_minutes)
            )
            online_users = [
                OnlineUser(
                    user_id=user.id,
                    username=user.username,
                    email=user.email,
                    subscription_type=user.subscription_type,
                    session=OnlineSessionInfo(
                        session_id=session.id,
                        login_at=session.login_at,
                        last_activity=session.last_activity,
                        ip_address=session.ip_address,
                        user_agent=session.user_agent,
                    ),
                )
                for session, user in rows
            ]

        distinct_users = {u.user_id: u.subscription_type for u in online_users}
        durations = [(now - u.session.login_at).total_seconds() / 60 for u in online_users]

        return Return.ok(
            OnlineUsersResponse(
                online_users=online_users,
                stats=OnlineSummary(
                    total_online=len(distinct_users),
                    total_sessions=len(online_users),
                    by_subscription=dict(Counter(distinct_users.values())),
                    average_session_minutes=round(sum(durations) / len(durations)) if durations else 0,
                ),
                window_minutes=window_minutes,
                last_updated=now,
            )
        )
