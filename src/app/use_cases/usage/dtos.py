"""
Usage Use Case DTOs

Decisions and snapshots produced by the rate limiter.
"""

from datetime import date
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ModuleInfo(BaseModel):
    id: str
    name: str
    weight: int


class UsageSnapshot(BaseModel):
    """Quota position after a decision; limit=None means unlimited"""

    current: int
    limit: Optional[int]
    remaining: Optional[int]
    percentage: int


class UsageWarning(BaseModel):
    percentage: int
    message: str


class UsageDecision(BaseModel):
    """
    Outcome of an allowed check_and_record call.

    tracked=False means nothing was recorded: the limiter is disabled, the
    module is unrestricted, the user is unlimited, or the check failed open.
    """

    allowed: bool = True
    tracked: bool
    module: ModuleInfo
    usage: Optional[UsageSnapshot] = None
    warnings: List[UsageWarning] = Field(default_factory=list)
    burst_used: bool = False


class ModuleUsageInfo(BaseModel):
    module_id: str
    module_name: str
    request_count: int
    weighted_usage: int


class UsageStatus(BaseModel):
    date: date
    timezone: str
    subscription_type: str
    usage: UsageSnapshot
    is_blocked: bool = False
    block_reason: Optional[str] = None
    module_usage: List[ModuleUsageInfo] = Field(default_factory=list)
    warnings_issued: List[int] = Field(default_factory=list)


class ResetDailyUsageResponse(BaseModel):
    deleted_rows: int
    cutoff_date: date


class UsageHistoryEntry(BaseModel):
    date: date
    request_count: int
    daily_limit: int
    is_blocked: bool = False
    module_usage: List[ModuleUsageInfo] = Field(default_factory=list)


class UserUsageReport(BaseModel):
    """Admin view of one user: today's position plus recent days"""

    user_id: UUID
    username: str
    email: str
    current_status: UsageStatus
    history: List[UsageHistoryEntry] = Field(default_factory=list)
