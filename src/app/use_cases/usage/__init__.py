"""
Usage Use Cases

Usage-based rate limiting and usage reporting.
"""

from .rate_limiter import RateLimiter
from .dtos import (
    ModuleInfo,
    ModuleUsageInfo,
    ResetDailyUsageResponse,
    UsageDecision,
    UsageHistoryEntry,
    UsageSnapshot,
    UsageStatus,
    UsageWarning,
    UserUsageReport,
)

__all__ = [
    "RateLimiter",
    "ModuleInfo",
    "ModuleUsageInfo",
    "ResetDailyUsageResponse",
    "UsageDecision",
    "UsageSnapshot",
    "UsageStatus",
    "UsageWarning",
    "UsageHistoryEntry",
    "UserUsageReport",
]
