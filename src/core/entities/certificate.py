"""
Entity: Verification Certificate

Proof artifact for a VERIFIED attempt, anchored by a public SHA-256 hash.
Immutable except for the revocation fields.
"""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class VerificationCertificate:
    id: str
    verification_id: str
    certificate_number: str              # PR-BO-<year>-<6 digits>
    issued_at: datetime
    expires_at: datetime
    document_path: str
    verification_hash: str               # 64 hex chars
    validation_url: str
    qr_code_data: str                    # JSON
    is_revoked: bool = False
    revoked_at: datetime | None = None
    revoked_reason: str | None = None
    revoked_by: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now


@dataclass
class CertificateValidation:
    """Resultado da validação pública por hash."""
    valid: bool
    reason: str | None = None
    certificate: dict | None = None      # summary: number, dates, owner name
    revoked_at: datetime | None = None
    revoked_reason: str | None = None

    def to_dict(self) -> dict:
        data: dict = {"valid": self.valid}
        if self.reason:
            data["reason"] = self.reason
        if self.certificate is not None:
            data["certificate"] = self.certificate
        if self.revoked_at is not None:
            data["revoked_at"] = self.revoked_at
            data["revoked_reason"] = self.revoked_reason
        return data
