"""
User Use Case DTOs
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from src.domain.entities import UserStatus


class CurrentUser(BaseModel):
    """The authenticated user, detached from the persistence session"""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    username: str
    status: UserStatus
    subscription_type: str
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
