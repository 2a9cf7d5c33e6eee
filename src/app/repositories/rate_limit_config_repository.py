from abc import ABC, abstractmethod
from typing import Optional

from src.domain.entities import RateLimitConfig


class IRateLimitConfigRepository(ABC):
    """RateLimitConfig repository interface - application layer"""

    @abstractmethod
    async def get_active(self) -> Optional[RateLimitConfig]:
        """Get the active (default) configuration row"""
        pass

    @abstractmethod
    async def create(self, config: RateLimitConfig) -> RateLimitConfig:
        """Create a configuration row"""
        pass

    @abstractmethod
    async def update(self, config: RateLimitConfig) -> RateLimitConfig:
        """Update existing configuration"""
        pass
