"""
Authentication Use Cases

All authentication-related business logic.
"""

from .signup_use_case import SignupUseCase
from .login_use_case import LoginUseCase
from .dtos import AuthResponse, SignupCommand, UserInfo

__all__ = [
    # Use Cases
    "SignupUseCase",
    "LoginUseCase",
    # DTOs - Commands
    "SignupCommand",
    # DTOs - Responses
    "AuthResponse",
    # DTOs - Nested Models
    "UserInfo",
]
