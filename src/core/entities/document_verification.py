"""
Entity: Document Verification

One decision about one document inside one verification attempt.
Keyed by (verification_id, document_id); overwritten in place, never deleted.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from src.core.clock import utcnow


class DocumentStatus(str, Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    UNREADABLE = "UNREADABLE"
    EXPIRED = "EXPIRED"
    INCONSISTENT_DATA = "INCONSISTENT_DATA"
    SUSPECTED_FRAUD = "SUSPECTED_FRAUD"
    OTHER_ISSUE = "OTHER_ISSUE"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    NOT_APPLICABLE = "NOT_APPLICABLE"


# Statuses a reviewer is expected to explain. Advisory: surfaced, not enforced.
NOTE_REQUIRED_STATUSES = frozenset({
    DocumentStatus.REJECTED,
    DocumentStatus.UNREADABLE,
    DocumentStatus.EXPIRED,
    DocumentStatus.INCONSISTENT_DATA,
    DocumentStatus.SUSPECTED_FRAUD,
    DocumentStatus.OTHER_ISSUE,
    DocumentStatus.NEEDS_REVIEW,
})


@dataclass
class Document:
    """Uploaded owner document (read-only for the verification core)."""
    id: str
    owner_id: str
    filename: str
    category: str                        # ex: "identity", "address", "business"
    content_type: str = "application/pdf"
    storage_path: str = ""
    content_hash: str = ""
    uploaded_at: datetime = field(default_factory=utcnow)
    deleted_at: datetime | None = None


@dataclass
class DocumentVerification:
    id: str
    verification_id: str
    document_id: str
    status: DocumentStatus
    verified_by: str
    notes: str | None = None
    verified_at: datetime = field(default_factory=utcnow)
