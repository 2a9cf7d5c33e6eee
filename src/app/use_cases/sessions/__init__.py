"""
Session Use Cases

Session lifecycle: single active session, concurrent-login detection,
idle timeout and heartbeat.
"""

from .session_manager import SessionManager, hash_token
from .list_online_users_use_case import ListOnlineUsersUseCase
from .get_online_stats_use_case import GetOnlineStatsUseCase
from .dtos import (
    ActiveSessionInfo,
    CreatedSession,
    ForceLogoutResponse,
    HeartbeatResponse,
    LogoutResponse,
    SessionContext,
    OnlineStatsResponse,
    OnlineUsersResponse,
    SessionMeta,
)

__all__ = [
    "SessionManager",
    "hash_token",
    "SessionMeta",
    "CreatedSession",
    "SessionContext",
    "HeartbeatResponse",
    "LogoutResponse",
    "ActiveSessionInfo",
    "ForceLogoutResponse",
    "ListOnlineUsersUseCase",
    "GetOnlineStatsUseCase",
    "OnlineUsersResponse",
    "OnlineStatsResponse",
]
