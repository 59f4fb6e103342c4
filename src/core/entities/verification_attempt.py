"""
Entity: Verification Attempt

One verification cycle for an owner. OPEN while `completed_at` is None,
COMPLETED (terminal) afterwards. A new cycle is a new attempt.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from src.core.clock import utcnow


class SectionStatus(str, Enum):
    INCOMPLETE = "INCOMPLETE"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETE = "COMPLETE"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    NEEDS_INFO = "NEEDS_INFO"


class Decision(str, Enum):
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    NEEDS_INFO = "NEEDS_INFO"


@dataclass
class Section:
    status: SectionStatus = SectionStatus.INCOMPLETE
    notes: str | None = None

    def to_dict(self) -> dict:
        data = {"status": self.status.value}
        if self.notes:
            data["notes"] = self.notes
        return data

    @classmethod
    def from_dict(cls, data: dict | None) -> "Section":
        data = data or {}
        return cls(
            status=SectionStatus(data.get("status", SectionStatus.INCOMPLETE.value)),
            notes=data.get("notes"),
        )


@dataclass
class Sections:
    """The three fixed verification domains of an attempt."""
    identity: Section = field(default_factory=Section)
    address: Section = field(default_factory=Section)
    business_affiliation: Section = field(default_factory=Section)

    # storage keys keep the camelCase used by the wizard payloads
    KEYS = (("identity", "identity"), ("address", "address"), ("business_affiliation", "businessAffiliation"))

    def to_dict(self) -> dict:
        return {key: getattr(self, attr).to_dict() for attr, key in self.KEYS}

    @classmethod
    def from_dict(cls, data: dict | None) -> "Sections":
        data = data or {}
        return cls(**{attr: Section.from_dict(data.get(key)) for attr, key in cls.KEYS})

    def names(self) -> list[str]:
        return [key for _, key in self.KEYS]


@dataclass
class VerificationAttempt:
    """Entidade de domínio: Verification Attempt."""
    id: str
    business_owner_id: str
    initiated_by: str
    sections: Sections = field(default_factory=Sections)
    draft_data: dict = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    last_updated: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None
    decision: Decision | None = None
    decision_reason: str | None = None

    @property
    def is_open(self) -> bool:
        return self.completed_at is None
