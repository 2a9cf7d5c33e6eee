"""
Admin API Key Authentication

Validates admin API keys for the session and rate-limit administration
endpoints.
"""

import hmac

from fastapi import Header, status
from libs.result import Error
from src.api.error import ClientError
from config import ApplicationConfig


async def verify_admin_api_key(
    x_admin_api_key: str = Header(None),
    x_admin_user: str = Header(None),
) -> str:
    """
    Verify admin API key from X-Admin-API-Key header.

    Args:
        x_admin_api_key: API key from X-Admin-API-Key header
        x_admin_user: Optional operator name, recorded as the actor of audit events

    Raises:
        ClientError: 401 if key is missing or invalid

    Returns:
        The acting admin's name ("admin" when not given)
    """
    if not x_admin_api_key:
        raise ClientError(
            Error("UNAUTHORIZED", "Admin API key required"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    if not hmac.compare_digest(x_admin_api_key, ApplicationConfig.ADMIN_API_KEY):
        raise ClientError(
            Error("INVALID_API_KEY", "Invalid admin API key"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    return x_admin_user or "admin"
