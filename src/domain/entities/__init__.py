"""
Domain Entities

All domain entities organized by model.
Each entity in its own file for better maintainability.
"""

# Export all enums
from .enums import (
    LogoutReason,
    SubscriptionType,
    UserStatus,
)

# Export all entities
from .user import User
from .session import UserSession
from .audit_event import AuditEvent
from .rate_limit_config import (
    BurstSettings,
    RateLimitConfig,
    RateLimitPolicy,
    RestrictedModule,
    SubscriptionLimit,
    WarningThreshold,
)
from .daily_usage_limit import DailyUsageLimit, ModuleUsage, usage_percentage

__all__ = [
    # Enums
    "LogoutReason",
    "SubscriptionType",
    "UserStatus",
    # Entities
    "User",
    "UserSession",
    "AuditEvent",
    "RateLimitConfig",
    "DailyUsageLimit",
    "ModuleUsage",
    # Value objects
    "RateLimitPolicy",
    "RestrictedModule",
    "SubscriptionLimit",
    "WarningThreshold",
    "BurstSettings",
    "usage_percentage",
]
