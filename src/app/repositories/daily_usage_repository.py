from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from src.domain.entities import DailyUsageLimit, ModuleUsage


class IDailyUsageRepository(ABC):
    """DailyUsageLimit repository interface - application layer"""

    @abstractmethod
    async def get_for_day(self, user_id: UUID, usage_date: date) -> Optional[DailyUsageLimit]:
        """Get the usage row of a user for a calendar day"""
        pass

    @abstractmethod
    async def create(self, usage: DailyUsageLimit) -> DailyUsageLimit:
        """Create a usage row"""
        pass

    @abstractmethod
    async def get_or_create(self, usage: DailyUsageLimit) -> DailyUsageLimit:
        """
        Insert a usage row unless the user already has one for that day.

        Returns the stored row. When a concurrent insert wins the unique
        (user_id, usage_date) index, the current transaction is rolled back
        and the winner's row is returned, so call it before any other write
        of the unit of work.
        """
        pass

    @abstractmethod
    async def update(self, usage: DailyUsageLimit) -> DailyUsageLimit:
        """Persist burst, warning and block fields of a usage row"""
        pass

    @abstractmethod
    async def add_usage(
        self,
        usage: DailyUsageLimit,
        module_id: str,
        module_name: str,
        weight: int,
        at: datetime,
    ) -> DailyUsageLimit:
        """
        Accumulate weight into total_usage and the module breakdown.

        Implemented with `column = column + weight` updates, never by writing
        back an absolute value read earlier. Returns the refreshed row.
        """
        pass

    @abstractmethod
    async def get_module_usage(self, usage_id: UUID) -> List[ModuleUsage]:
        """Module breakdown of a usage row"""
        pass

    @abstractmethod
    async def delete_before(self, cutoff: date) -> int:
        """Delete usage rows (and their module rows) older than cutoff. Returns count."""
        pass

    @abstractmethod
    async def get_heavy_users(self, since: date, threshold: float) -> List[Dict[str, Any]]:
        """Users whose mean total_usage/daily_limit since `since` is >= threshold"""
        pass

    @abstractmethod
    async def get_daily_stats(self, since: date, until: date) -> List[Dict[str, Any]]:
        """Per-day aggregate counts between two dates, newest first"""
        pass

    @abstractmethod
    async def list_for_user(self, user_id: UUID, since: date, until: date) -> List[DailyUsageLimit]:
        """Usage rows of a user between two dates, newest first"""
        pass

    @abstractmethod
    async def get_module_stats(self, since: date, until: date) -> List[Dict[str, Any]]:
        """Per-module aggregate counts between two dates, most requested first"""
        pass
