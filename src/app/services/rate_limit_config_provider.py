"""
Rate-Limit Config Provider

The single read path for the rate-limit configuration. Holds an immutable
RateLimitPolicy for a short TTL; admin updates call invalidate() so the next
read reloads from the store.
"""

import logging
import time
from typing import Callable, Optional

from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import RateLimitConfig, RateLimitPolicy

logger = logging.getLogger(__name__)


class RateLimitConfigProvider:
    def __init__(self, ttl_seconds: float = 30, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._policy: Optional[RateLimitPolicy] = None
        self._loaded_at: float = 0.0

    async def get(self, uow: UnitOfWork) -> RateLimitPolicy:
        """Current policy. `uow` must already be entered by the caller."""
        if self._policy is not None and self.clock() - self._loaded_at < self.ttl_seconds:
            return self._policy

        config = await self.load_or_create(uow)
        self._policy = config.to_policy()
        self._loaded_at = self.clock()
        return self._policy

    async def load_or_create(self, uow: UnitOfWork) -> RateLimitConfig:
        config = await uow.rate_limit_configs.get_active()
        if config is None:
            logger.info("No active rate limit config found, creating defaults")
            config = await uow.rate_limit_configs.create(
                RateLimitConfig.from_policy(RateLimitPolicy())
            )
            await uow.commit()
        return config

    def invalidate(self) -> None:
        self._policy = None
        self._loaded_at = 0.0
