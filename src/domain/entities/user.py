"""
User Entity

Represents an account holder of the content-generation product.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, SQLModel

from src.domain.base import utc_now
from .enums import SubscriptionType, UserStatus


class User(SQLModel, table=True):
    """
    User entity - account holder.

    Business Rules:
    - Email and username must be unique across all users
    - Password stored as bcrypt hash (cost factor 12)
    - subscription_type selects the daily quota tier
    """

    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(unique=True, index=True, max_length=255)
    username: str = Field(unique=True, index=True, max_length=100)
    password_hash: str = Field(max_length=60)  # Bcrypt output is 60 chars

    status: UserStatus = Field(default=UserStatus.active)
    subscription_type: str = Field(default=SubscriptionType.free.value, max_length=50)

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime))
    last_login_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
