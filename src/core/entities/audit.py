"""
Entity: Audit entries

ActivityLogEntry is owner-scoped (cross-entity feed); VerificationHistoryEntry
is attempt-scoped. Both are append-only.
"""

from dataclasses import dataclass, field
from datetime import datetime

from src.core.clock import utcnow


@dataclass
class ActivityLogEntry:
    id: str
    business_owner_id: str
    entity_type: str                     # ex: "verification_attempt", "document"
    action: str
    action_description: str
    performed_by: str
    entity_id: str | None = None
    performed_by_name: str | None = None
    performed_by_role: str | None = None
    details: dict = field(default_factory=dict)
    performed_at: datetime = field(default_factory=utcnow)


@dataclass
class VerificationHistoryEntry:
    id: str
    verification_id: str
    action: str
    performed_by: str
    details: dict = field(default_factory=dict)
    step_number: int | None = None
    performed_at: datetime = field(default_factory=utcnow)


@dataclass
class AuditFailure:
    """Returned instead of an entry when best-effort logging fails."""
    error: str
    success: bool = False
    timestamp: datetime = field(default_factory=utcnow)
