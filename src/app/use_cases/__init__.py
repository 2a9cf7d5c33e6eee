"""
Use Cases

Organized into domain folders:
- auth/: Registration and login
- sessions/: Session lifecycle
- usage/: Rate limiting and usage reporting
- users/: Current user
- admin/: Rate-limit administration
- audit/: Audit logs
"""

from .auth import SignupCommand, SignupUseCase, LoginUseCase
from .sessions import SessionManager
from .usage import RateLimiter
from .users import LoadContextUseCase
from .admin import (
    BlockUserUseCase,
    GetRateLimitConfigUseCase,
    UpdateRateLimitConfigUseCase,
)
from .audit import ListAuditEventsUseCase

__all__ = [
    # Auth
    "SignupUseCase",
    "SignupCommand",
    "LoginUseCase",
    # Sessions
    "SessionManager",
    # Usage
    "RateLimiter",
    # Users
    "LoadContextUseCase",
    # Admin
    "GetRateLimitConfigUseCase",
    "UpdateRateLimitConfigUseCase",
    "BlockUserUseCase",
    # Audit
    "ListAuditEventsUseCase",
]
