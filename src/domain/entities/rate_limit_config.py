"""
RateLimitConfig Entity

Process-wide quota configuration, mutated only by admin action.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field as PydanticField
from sqlmodel import Column, DateTime, Field, JSON, SQLModel

from src.domain.base import utc_now


class RestrictedModule(BaseModel):
    """A functional area whose requests count toward the daily quota"""

    module_id: str
    module_name: str
    is_active: bool = True
    weight: int = PydanticField(default=1, ge=0)


class SubscriptionLimit(BaseModel):
    """Per-tier daily quota; daily_limit=None means unlimited"""

    subscription_type: str
    daily_limit: Optional[int] = PydanticField(default=None, ge=0)
    description: Optional[str] = None


class WarningThreshold(BaseModel):
    percentage: int = PydanticField(ge=1, le=100)
    message: str
    is_active: bool = True


class BurstSettings(BaseModel):
    is_enabled: bool = False
    burst_limit: int = PydanticField(default=20, ge=0)
    burst_window_minutes: int = PydanticField(default=60, ge=1)
    cooldown_minutes: int = PydanticField(default=240, ge=0)


DEFAULT_RESTRICTED_MODULES = [
    RestrictedModule(module_id="write-story", module_name="Write Story", weight=1),
    RestrictedModule(module_id="batch-story-writing", module_name="Batch Story Writing", weight=2),
    RestrictedModule(module_id="rewrite", module_name="Rewrite", weight=1),
    RestrictedModule(module_id="batch-rewrite", module_name="Batch Rewrite", weight=2),
]

DEFAULT_SUBSCRIPTION_LIMITS = [
    SubscriptionLimit(subscription_type="free", daily_limit=50, description="Free tier"),
    SubscriptionLimit(subscription_type="monthly", daily_limit=200, description="Monthly subscription"),
    SubscriptionLimit(subscription_type="quarterly", daily_limit=300, description="Quarterly subscription"),
    SubscriptionLimit(subscription_type="lifetime", daily_limit=500, description="Lifetime subscription"),
]

DEFAULT_WARNING_THRESHOLDS = [
    WarningThreshold(percentage=50, message="You have used 50% of your daily quota."),
    WarningThreshold(percentage=75, message="You have used 75% of your daily quota. 25% left for today."),
    WarningThreshold(percentage=90, message="Warning: you have used 90% of your daily quota."),
]


class RateLimitPolicy(BaseModel):
    """
    Immutable snapshot of the rate-limit configuration.

    Every request reads this object, never the mutable entity, so a config
    change between a read and a later write cannot tear a single decision.
    """

    model_config = ConfigDict(frozen=True)

    is_enabled: bool = True
    daily_limit: int = PydanticField(default=200, ge=0)
    timezone: str = "Asia/Ho_Chi_Minh"
    restricted_modules: List[RestrictedModule] = PydanticField(
        default_factory=lambda: list(DEFAULT_RESTRICTED_MODULES)
    )
    subscription_limits: List[SubscriptionLimit] = PydanticField(
        default_factory=lambda: list(DEFAULT_SUBSCRIPTION_LIMITS)
    )
    exempted_user_ids: List[str] = PydanticField(default_factory=list)
    burst: BurstSettings = PydanticField(default_factory=BurstSettings)
    warning_thresholds: List[WarningThreshold] = PydanticField(
        default_factory=lambda: list(DEFAULT_WARNING_THRESHOLDS)
    )
    maintenance_mode: bool = False
    maintenance_message: str = "System is under maintenance. Please try again later."
    retention_days: int = PydanticField(default=30, ge=1)
    version: int = 1

    def _module(self, module_id: str) -> Optional[RestrictedModule]:
        for module in self.restricted_modules:
            if module.module_id == module_id:
                return module
        return None

    def is_module_restricted(self, module_id: str) -> bool:
        module = self._module(module_id)
        return module is not None and module.is_active

    def module_weight(self, module_id: str) -> int:
        module = self._module(module_id)
        return module.weight if module else 1

    def effective_daily_limit(self, user_id: UUID, subscription_type: Optional[str]) -> Optional[int]:
        """Quota for a user; None means unlimited."""
        if str(user_id) in self.exempted_user_ids:
            return None
        for limit in self.subscription_limits:
            if limit.subscription_type == subscription_type:
                return limit.daily_limit
        return self.daily_limit

    def active_thresholds(self) -> List[WarningThreshold]:
        return sorted(
            (t for t in self.warning_thresholds if t.is_active),
            key=lambda t: t.percentage,
        )


class RateLimitConfig(SQLModel, table=True):
    """
    RateLimitConfig entity - persisted form of RateLimitPolicy.

    Business Rules:
    - Exactly one row has is_active=True; it is created with defaults on first read
    - Structured settings are stored as JSON and validated through RateLimitPolicy
    - version increments on every admin update
    """

    __tablename__ = "rate_limit_configs"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    is_active: bool = Field(default=True, index=True)

    is_enabled: bool = Field(default=True)
    daily_limit: int = Field(default=200)
    timezone: str = Field(default="Asia/Ho_Chi_Minh", max_length=64)

    restricted_modules: list = Field(default_factory=list, sa_column=Column(JSON))
    subscription_limits: list = Field(default_factory=list, sa_column=Column(JSON))
    exempted_user_ids: list = Field(default_factory=list, sa_column=Column(JSON))
    burst_settings: dict = Field(default_factory=dict, sa_column=Column(JSON))
    warning_thresholds: list = Field(default_factory=list, sa_column=Column(JSON))

    maintenance_mode: bool = Field(default=False)
    maintenance_message: str = Field(default="", max_length=500)
    retention_days: int = Field(default=30)

    version: int = Field(default=1)
    last_updated_by: str = Field(default="system", max_length=100)
    updated_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime))

    def to_policy(self) -> RateLimitPolicy:
        return RateLimitPolicy(
            is_enabled=self.is_enabled,
            daily_limit=self.daily_limit,
            timezone=self.timezone,
            restricted_modules=self.restricted_modules or [],
            subscription_limits=self.subscription_limits or [],
            exempted_user_ids=self.exempted_user_ids or [],
            burst=self.burst_settings or {},
            warning_thresholds=self.warning_thresholds or [],
            maintenance_mode=self.maintenance_mode,
            maintenance_message=self.maintenance_message,
            retention_days=self.retention_days,
            version=self.version,
        )

    def apply_policy(self, policy: RateLimitPolicy) -> None:
        # JSON columns are reassigned, never mutated in place, so the ORM sees the change
        self.is_enabled = policy.is_enabled
        self.daily_limit = policy.daily_limit
        self.timezone = policy.timezone
        self.restricted_modules = [m.model_dump() for m in policy.restricted_modules]
        self.subscription_limits = [s.model_dump() for s in policy.subscription_limits]
        self.exempted_user_ids = list(policy.exempted_user_ids)
        self.burst_settings = policy.burst.model_dump()
        self.warning_thresholds = [w.model_dump() for w in policy.warning_thresholds]
        self.maintenance_mode = policy.maintenance_mode
        self.maintenance_message = policy.maintenance_message
        self.retention_days = policy.retention_days

    @classmethod
    def from_policy(cls, policy: RateLimitPolicy) -> "RateLimitConfig":
        config = cls()
        config.apply_policy(policy)
        return config
