"""
Authentication Use Case DTOs (Data Transfer Objects)

- SignupCommand: validated registration intent from the API layer
- AuthResponse: token pair and user info returned by signup and login
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class SignupCommand(BaseModel):
    """Registration intent; contains only business-relevant data (no HTTP concerns)."""

    email: str
    username: str
    password: str


class UserInfo(BaseModel):
    """User information in authentication responses"""

    id: str
    email: str
    username: str
    subscription_type: str
    last_login_at: Optional[datetime] = None


class AuthResponse(BaseModel):
    """
    Response for signup and login.

    access_token identifies the user (JWT); session_token identifies this
    device's session and must be sent in the session header on every request.
    """

    access_token: str
    session_token: str
    session_id: str
    user: UserInfo
    replaced_sessions: int = 0
