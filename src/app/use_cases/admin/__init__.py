"""Admin use cases for rate-limit administration."""

from .get_rate_limit_config_use_case import (
    GetRateLimitConfigUseCase,
    RateLimitConfigResponse,
)
from .update_rate_limit_config_use_case import (
    UpdateRateLimitConfigCommand,
    UpdateRateLimitConfigUseCase,
)
from .block_user_use_case import BlockUserResponse, BlockUserUseCase
from .exempt_user_use_case import ExemptUserResponse, ExemptUserUseCase

__all__ = [
    "GetRateLimitConfigUseCase",
    "RateLimitConfigResponse",
    "UpdateRateLimitConfigUseCase",
    "UpdateRateLimitConfigCommand",
    "BlockUserUseCase",
    "BlockUserResponse",
    "ExemptUserUseCase",
    "ExemptUserResponse",
]
