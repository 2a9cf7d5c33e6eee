"""
Audit Use Cases

All audit-related business logic.
"""

from .list_audit_events_use_case import ListAuditEventsUseCase

__all__ = [
    "ListAuditEventsUseCase",
]
