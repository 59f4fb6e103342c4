"""
Use Case: Certificate Issuer

Issues, validates and revokes the proof certificate of a VERIFIED attempt.

The verification hash is SHA-256 over a canonical JSON payload
(fixed key order, compact separators, millisecond UTC timestamps), so any
party holding the hash can check it against `verify_by_hash` without the PDF.
"""

import hashlib
import json
import logging
import random
import re
import uuid
from datetime import datetime, timedelta, timezone

from src.core.clock import timestamp, utcnow
from src.core.errors import (
    ConcurrencyConflict,
    DependencyFailure,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from src.core.entities.certificate import CertificateValidation, VerificationCertificate
from src.core.entities.verification_attempt import Decision, VerificationAttempt
from src.core.interfaces.certificate_renderer import CertificatePayload, ICertificateRenderer
from src.core.interfaces.storage_service import IStorageService
from src.core.interfaces.unit_of_work import IUnitOfWork, Transaction
from src.core.use_cases.audit_log import AuditLog

logger = logging.getLogger(__name__)

HASH_PATTERN = re.compile(r"^[0-9a-f]{64}$")
NUMBER_ALLOCATION_ATTEMPTS = 5


def format_verified_at(value: datetime) -> str:
    """Millisecond UTC ISO-8601 with a trailing Z, ex 2024-05-01T12:30:00.000Z."""
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def canonical_payload(
    verification_id: str,
    business_owner_id: str,
    verified_by: str,
    verified_at: datetime,
    owner_name: str,
) -> str:
    return json.dumps(
        {
            "verificationId": verification_id,
            "businessOwnerId": business_owner_id,
            "verifiedBy": verified_by,
            "verifiedAt": format_verified_at(verified_at),
            "ownerName": owner_name,
        },
        separators=(",", ":"),
        ensure_ascii=False,
    )


def compute_hash(
    verification_id: str,
    business_owner_id: str,
    verified_by: str,
    verified_at: datetime,
    owner_name: str,
) -> str:
    payload = canonical_payload(verification_id, business_owner_id, verified_by, verified_at, owner_name)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class CertificateIssuer:
    """
    Use Case: emissão idempotente de certificados.

    Dependency Injection: renderer and storage are opaque ports; the audit
    log records issuance and revocation.
    """

    def __init__(
        self,
        uow: IUnitOfWork,
        renderer: ICertificateRenderer,
        storage: IStorageService,
        audit_log: AuditLog,
        app_base_url: str,
        validity_days: int = 365,
        signed_url_ttl: int = 3600,
        rng: random.Random | None = None,
    ):
        self._uow = uow
        self._renderer = renderer
        self._storage = storage
        self._audit = audit_log
        self._base_url = app_base_url.rstrip("/")
        self._validity = timedelta(days=validity_days)
        self._signed_url_ttl = signed_url_ttl
        self._rng = rng or random.SystemRandom()

    def validation_url(self, verification_hash: str) -> str:
        return f"{self._base_url}/verify/{verification_hash}"

    def new_certificate_number(self, year: int) -> str:
        return f"PR-BO-{year}-{self._rng.randint(100000, 999999)}"

    # ── Issuance ───────────────────────────────────────────

    def generate(self, verification_id: str, actor_id: str, tx: Transaction | None = None) -> VerificationCertificate:
        """
        Issue the certificate of a VERIFIED attempt, or return the existing one.

        Raises:
            NotFoundError: attempt missing.
            InvalidStateError: attempt not VERIFIED.
            DependencyFailure: renderer or storage failed.
        """
        with self._uow.begin(tx) as t:
            attempt = t.attempts.get(verification_id)
            if attempt is None:
                raise NotFoundError("Verification attempt not found")
            if attempt.decision != Decision.VERIFIED or attempt.completed_at is None:
                raise InvalidStateError("Cannot generate certificate for non-verified attempt")

            existing = t.certificates.get_by_verification(verification_id)
            if existing:
                return existing

            owner = t.owners.get(attempt.business_owner_id)
            owner_name = owner.full_name if owner else ""
            verified_at = attempt.completed_at
            verification_hash = compute_hash(
                verification_id, attempt.business_owner_id, attempt.initiated_by, verified_at, owner_name
            )
            validation_url = self.validation_url(verification_hash)
            expires_at = verified_at + self._validity

            certificate = None
            for _ in range(NUMBER_ALLOCATION_ATTEMPTS):
                number = self.new_certificate_number(utcnow().year)
                document_path = self._render_and_store(
                    attempt,
                    CertificatePayload(
                        verification_id=verification_id,
                        business_owner_id=attempt.business_owner_id,
                        owner_name=owner_name,
                        certificate_number=number,
                        verified_at=verified_at,
                        verified_by=attempt.initiated_by,
                        expires_at=expires_at,
                        verification_hash=verification_hash,
                        validation_url=validation_url,
                    ),
                )
                try:
                    certificate = t.certificates.add(
                        VerificationCertificate(
                            id=str(uuid.uuid4()),
                            verification_id=verification_id,
                            certificate_number=number,
                            issued_at=verified_at,
                            expires_at=expires_at,
                            document_path=document_path,
                            verification_hash=verification_hash,
                            validation_url=validation_url,
                            qr_code_data=json.dumps({
                                "certificateNumber": number,
                                "verificationHash": verification_hash,
                                "validationUrl": validation_url,
                            }),
                        )
                    )
                    break
                except ConcurrencyConflict:
                    issued = t.certificates.get_by_verification(verification_id)
                    if issued:
                        return issued
                    logger.warning(f"Certificate number {number} already taken, drawing another")
            if certificate is None:
                raise ConcurrencyConflict("Could not allocate a unique certificate number")

            self._audit.log_event(
                entity_type="verification_certificate",
                entity_id=certificate.id,
                action="CREATE",
                performed_by=actor_id,
                business_owner_id=attempt.business_owner_id,
                details={
                    "certificateNumber": certificate.certificate_number,
                    "verificationId": verification_id,
                    "timestamp": timestamp(),
                },
                tx=t,
            )
            logger.info(f"Issued certificate {certificate.certificate_number} for attempt {verification_id}")
            return certificate

    def _render_and_store(self, attempt: VerificationAttempt, payload: CertificatePayload) -> str:
        key = f"certificates/{attempt.business_owner_id}/{attempt.id}.pdf"
        try:
            content = self._renderer.render(payload)
            ref = self._storage.upload(content, key, content_type=self._renderer.content_type)
        except DependencyFailure:
            raise
        except Exception as e:
            raise DependencyFailure(f"Failed to generate verification certificate: {e}") from e
        return ref.key

    def get_or_generate(self, owner_id: str, actor_id: str) -> dict:
        """Certificate of the owner's latest VERIFIED attempt, issued on demand."""
        with self._uow.begin() as t:
            if t.owners.get_managed(owner_id, actor_id) is None:
                raise NotFoundError("Business owner not found or not managed by this user")
            attempt = t.attempts.latest_verified(owner_id)
            if attempt is None:
                raise NotFoundError("No verified verification attempt found for this owner")
            certificate = self.generate(attempt.id, actor_id, tx=t)
        return self.get_certificate(certificate.id, actor_id)

    # ── Reads ──────────────────────────────────────────────

    @staticmethod
    def _managed_certificate(t: Transaction, certificate_id: str, actor_id: str):
        """Certificate, attempt and owner, or NotFoundError when outside the caller's scope."""
        certificate = t.certificates.get(certificate_id)
        attempt = t.attempts.get(certificate.verification_id) if certificate else None
        owner = t.owners.get_managed(attempt.business_owner_id, actor_id) if attempt else None
        if owner is None:
            raise NotFoundError("Certificate not found")
        return certificate, attempt, owner

    def get_certificate(self, certificate_id: str, actor_id: str) -> dict:
        """Certificate detail with a short-lived download URL."""
        with self._uow.begin() as t:
            certificate, _, owner = self._managed_certificate(t, certificate_id, actor_id)

        try:
            certificate_url = self._storage.get_signed_url(certificate.document_path, self._signed_url_ttl)
        except Exception:
            logger.exception(f"Could not sign download URL for certificate {certificate_id}")
            certificate_url = None

        return {
            "id": certificate.id,
            "certificate_number": certificate.certificate_number,
            "verification_id": certificate.verification_id,
            "issued_at": certificate.issued_at,
            "expires_at": certificate.expires_at,
            "verification_hash": certificate.verification_hash,
            "validation_url": certificate.validation_url,
            "qr_code_data": json.loads(certificate.qr_code_data) if certificate.qr_code_data else None,
            "owner_name": owner.full_name,
            "owner_email": owner.email,
            "is_revoked": certificate.is_revoked,
            "revoked_at": certificate.revoked_at,
            "revoked_reason": certificate.revoked_reason,
            "certificate_url": certificate_url,
        }

    def verify_by_hash(self, verification_hash: str) -> CertificateValidation:
        """
        Public validation. Anyone holding the hash may call this.

        Failure results carry a reason only; owner data is returned on success
        alone, and then only name, dates and certificate number.
        """
        normalized = (verification_hash or "").strip().lower()
        if not HASH_PATTERN.match(normalized):
            return CertificateValidation(valid=False, reason="Certificate not found")

        with self._uow.begin() as t:
            certificate = t.certificates.get_by_hash(normalized)
            if certificate is None:
                return CertificateValidation(valid=False, reason="Certificate not found")
            if certificate.is_revoked:
                return CertificateValidation(
                    valid=False,
                    reason="Certificate has been revoked",
                    revoked_at=certificate.revoked_at,
                    revoked_reason=certificate.revoked_reason,
                )
            if certificate.is_expired(utcnow()):
                return CertificateValidation(valid=False, reason="Certificate has expired")

            attempt = t.attempts.get(certificate.verification_id)
            owner = t.owners.get(attempt.business_owner_id) if attempt else None

        return CertificateValidation(
            valid=True,
            certificate={
                "certificate_number": certificate.certificate_number,
                "issued_at": certificate.issued_at,
                "expires_at": certificate.expires_at,
                "owner_name": owner.full_name if owner else None,
                "verification_date": attempt.completed_at if attempt else None,
            },
        )

    # ── Revocation ─────────────────────────────────────────

    def revoke(self, certificate_id: str, actor_id: str, reason: str) -> VerificationCertificate:
        """
        Revoke a certificate. One-way: the record stays, flagged, forever.

        Raises:
            ValidationError: blank reason.
            NotFoundError: certificate missing or its owner not managed by actor.
            InvalidStateError: already revoked.
        """
        if not (reason or "").strip():
            raise ValidationError("A revocation reason is required")

        with self._uow.begin() as t:
            certificate, attempt, _ = self._managed_certificate(t, certificate_id, actor_id)
            if certificate.is_revoked:
                raise InvalidStateError("Certificate is already revoked")

            certificate.is_revoked = True
            certificate.revoked_at = utcnow()
            certificate.revoked_reason = reason
            certificate.revoked_by = actor_id
            revoked = t.certificates.save(certificate)

            self._audit.write_activity(
                t,
                business_owner_id=attempt.business_owner_id,
                entity_type="verification_certificate",
                entity_id=certificate_id,
                action="REVOKE",
                performed_by=actor_id,
                details={"certificateId": certificate_id, "reason": reason, "timestamp": timestamp()},
            )

        logger.info(f"Certificate {revoked.certificate_number} revoked by {actor_id}: {reason}")
        return revoked
