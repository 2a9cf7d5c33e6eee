from datetime import UTC, datetime, timedelta
from typing import Optional
from uuid import UUID

from jose import JWTError, jwt

from config import ApplicationConfig


def generate_jwt(user_id: UUID, subscription_type: str) -> str:
    """
    Generate JWT access token

    The token only identifies the user; whether the device may act is decided
    by the session token on every request.

    Args:
        user_id: User UUID
        subscription_type: Subscription tier at issue time (informational)

    Returns:
        JWT token string (HS256, JWT_EXPIRE_MINUTES expiry)
    """
    now = datetime.now(UTC)
    payload = {
        "user_id": str(user_id),
        "subscription_type": subscription_type,
        "exp": now + timedelta(minutes=ApplicationConfig.JWT_EXPIRE_MINUTES),
        "iat": now,
    }
    return jwt.encode(payload, ApplicationConfig.JWT_SECRET, algorithm="HS256")


def verify_jwt(token: str) -> Optional[dict]:
    """
    Verify and decode JWT token

    Args:
        token: JWT token string

    Returns:
        Decoded payload dict or None if invalid
    """
    try:
        payload = jwt.decode(
            token, ApplicationConfig.JWT_SECRET, algorithms=["HS256"]
        )
        return payload
    except JWTError:
        return None
