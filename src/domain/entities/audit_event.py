"""
AuditEvent Entity

Append-only forensic log of session and quota enforcement events.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, JSON, SQLModel

from src.domain.base import utc_now


class AuditEvent(SQLModel, table=True):
    """
    AuditEvent entity - immutable log entry.

    Business Rules:
    - Immutable (never updated or deleted)
    - actor is "system" for automatic detections, the admin name otherwise
    - user_id is the subject of the event, when there is one
    """

    __tablename__ = "audit_events"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    user_id: Optional[UUID] = Field(default=None, index=True)
    actor: str = Field(default="system", max_length=100)
    action: str = Field(max_length=100)  # e.g., "concurrent_login", "force_logout_all"
    description: str = Field(default="", max_length=1000)
    event_metadata: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_audit_created_at", "created_at"),
        Index("idx_audit_action", "action"),
    )
