"""
DailyUsageLimit and ModuleUsage Entities

Per-user, per-calendar-day accumulator of weighted module requests.
"""

from datetime import date, datetime, timedelta
from typing import List, Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, JSON, SQLModel

from src.domain.base import utc_now
from .rate_limit_config import BurstSettings


def usage_percentage(usage: int, limit: Optional[int]) -> int:
    """round(usage / limit * 100), halves rounded up; 0 when there is no positive limit."""
    if not limit or limit <= 0:
        return 0
    return (usage * 200 + limit) // (2 * limit)


class DailyUsageLimit(SQLModel, table=True):
    """
    DailyUsageLimit entity - one row per (user, day in the reference timezone).

    Business Rules:
    - Created lazily on the first accounted request of the day
    - total_usage only increases; a new day means a new row
    - daily_limit snapshots the effective limit of the user
    - Each warning threshold is issued at most once per row
    - Rows older than retention_days are deleted by the retention sweep
    """

    __tablename__ = "daily_usage_limits"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    usage_date: date = Field(index=True)
    subscription_type: str = Field(default="free", max_length=50)

    total_usage: int = Field(default=0)
    daily_limit: int = Field(default=0)

    is_blocked: bool = Field(default=False)
    block_reason: Optional[str] = Field(default=None, max_length=500)
    blocked_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    # Burst tracking
    current_burst: int = Field(default=0)
    burst_started_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    last_burst_used: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    cooldown_until: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    warnings_issued: list = Field(default_factory=list, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime))
    last_activity: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_daily_usage_user_date", "user_id", "usage_date", unique=True),
        Index("idx_daily_usage_date_total", "usage_date", "total_usage"),
    )

    def remaining_quota(self) -> int:
        return max(0, self.daily_limit - self.total_usage)

    def usage_percentage(self) -> int:
        return usage_percentage(self.total_usage, self.daily_limit)

    def in_burst_cooldown(self, now: datetime) -> bool:
        return self.cooldown_until is not None and self.cooldown_until > now

    def try_consume_burst(self, weight: int, settings: BurstSettings, now: datetime) -> bool:
        """
        Charge `weight` against the burst allowance if possible.

        The allowance resets when the burst window has elapsed; reaching
        burst_limit starts a cooldown during which no burst is granted.
        """
        if self.in_burst_cooldown(now):
            return False

        window = timedelta(minutes=settings.burst_window_minutes)
        if self.burst_started_at is None or now - self.burst_started_at > window:
            self.current_burst = 0
            self.burst_started_at = now

        if self.current_burst + weight > settings.burst_limit:
            return False

        self.current_burst += weight
        self.last_burst_used = now
        if self.current_burst >= settings.burst_limit:
            self.cooldown_until = now + timedelta(minutes=settings.cooldown_minutes)
        return True

    def issued_percentages(self) -> List[int]:
        return [w["percentage"] for w in self.warnings_issued or []]

    def add_warning(self, percentage: int, message: str, now: datetime) -> bool:
        """Record a threshold crossing; False if it was already issued today."""
        if percentage in self.issued_percentages():
            return False
        self.warnings_issued = list(self.warnings_issued or []) + [
            {"percentage": percentage, "message": message, "issued_at": now.isoformat()}
        ]
        return True


class ModuleUsage(SQLModel, table=True):
    """Per-module breakdown of a DailyUsageLimit row"""

    __tablename__ = "module_usage"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    daily_usage_id: UUID = Field(foreign_key="daily_usage_limits.id", nullable=False, index=True)
    module_id: str = Field(max_length=100)
    module_name: str = Field(default="", max_length=255)
    request_count: int = Field(default=0)
    weighted_usage: int = Field(default=0)
    last_used: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_module_usage_row_module", "daily_usage_id", "module_id", unique=True),
    )
