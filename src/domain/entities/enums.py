"""
Domain Enums

All enumeration types used across domain entities.
"""

from enum import Enum


class UserStatus(str, Enum):
    """User account status"""

    active = "active"
    disabled = "disabled"


class SubscriptionType(str, Enum):
    """Subscription tiers known to the default rate-limit configuration"""

    free = "free"
    monthly = "monthly"
    quarterly = "quarterly"
    lifetime = "lifetime"


class LogoutReason(str, Enum):
    """Why a session stopped being active"""

    USER_LOGOUT = "USER_LOGOUT"
    CONCURRENT_LOGIN_DETECTED = "CONCURRENT_LOGIN_DETECTED"
    SESSION_TIMEOUT = "SESSION_TIMEOUT"
    ADMIN_FORCE_LOGOUT = "ADMIN_FORCE_LOGOUT"
