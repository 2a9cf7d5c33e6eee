"""
User Use Cases

All user-related business logic.
"""

from .load_context_use_case import LoadContextUseCase
from .dtos import CurrentUser

__all__ = [
    "LoadContextUseCase",
    "CurrentUser",
]
