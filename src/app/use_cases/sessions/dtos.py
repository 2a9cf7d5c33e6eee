"""
Session Use Case DTOs

Command and Response classes for the session lifecycle.
"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel


class SessionMeta(BaseModel):
    """Client information captured at login"""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class CreatedSession(BaseModel):
    """A freshly created session; session_token is only ever returned here"""

    session_id: UUID
    session_token: str
    login_at: datetime
    replaced_sessions: int = 0


class SessionContext(BaseModel):
    """A validated session, attached to the request by the auth gate"""

    session_id: UUID
    user_id: UUID
    login_at: datetime
    last_activity: datetime
    total_api_calls: int


class HeartbeatResponse(BaseModel):
    status: str
    session_id: UUID
    last_activity: datetime


class LogoutResponse(BaseModel):
    status: str
    message: str


class ActiveSessionInfo(BaseModel):
    session_id: UUID
    ip_address: Optional[str]
    user_agent: Optional[str]
    login_at: datetime
    last_activity: datetime
    total_api_calls: int


class ForceLogoutResponse(BaseModel):
    user_id: UUID
    terminated_sessions: int


class OnlineSessionInfo(BaseModel):
    session_id: UUID
    login_at: datetime
    last_activity: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class OnlineUser(BaseModel):
    user_id: UUID
    username: str
    email: str
    subscription_type: str
    session: OnlineSessionInfo


class OnlineSummary(BaseModel):
    total_online: int
    total_sessions: int
    by_subscription: Dict[str, int]
    average_session_minutes: int


class OnlineUsersResponse(BaseModel):
    online_users: List[OnlineUser]
    stats: OnlineSummary
    window_minutes: int
    last_updated: datetime


class OnlineStatsResponse(BaseModel):
    """Active session counts by recency of last activity"""

    current_online: int
    active_last_hour: int
    active_last_24_hours: int
    avg_session_duration_minutes: int
    timestamp: datetime
