"""
Entity: Business Owner

Identidade sob verificação.
Modelo puro: sem dependência de framework ou banco.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from src.core.clock import utcnow


class VerificationStatus(str, Enum):
    UNVERIFIED = "UNVERIFIED"
    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    NEEDS_INFO = "NEEDS_INFO"


def mask_identifier(value: str | None) -> str | None:
    """Keep only the last 4 characters of a sensitive identifier."""
    if not value:
        return None
    return f"****{value[-4:]}"


@dataclass
class BusinessOwner:
    """Entidade de domínio: Business Owner."""
    id: str
    first_name: str
    last_name: str
    assigned_manager_id: str
    email: str = ""
    preferred_language: str = "en"       # "en" | "es"
    tax_id: str | None = None
    id_license_number: str | None = None
    verification_status: VerificationStatus = VerificationStatus.UNVERIFIED
    current_verification_attempt_id: str | None = None
    last_verified_at: datetime | None = None
    verification_expires_at: datetime | None = None
    deleted_at: datetime | None = None
    version: int = 1
    created_at: datetime = field(default_factory=utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def masked(self) -> "BusinessOwner":
        """Copy safe to hand back to callers: identifiers cut to last 4 chars."""
        return replace(
            self,
            tax_id=mask_identifier(self.tax_id),
            id_license_number=mask_identifier(self.id_license_number),
        )
