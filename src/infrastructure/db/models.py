"""
Database Models — SQLAlchemy.

Tables:
  - business_owners: identities under verification (optimistic `version`)
  - verification_attempts: one row per verification cycle
  - documents: uploaded owner documents
  - document_verifications: per-document decisions, unique per attempt
  - verification_certificates: issued proofs, unique per attempt
  - activity_logs / verification_history_logs: append-only audit trail
"""

import uuid

from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Text, JSON,
    ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase

from src.core.clock import as_utc, utcnow
from src.core.entities.audit import ActivityLogEntry, VerificationHistoryEntry
from src.core.entities.business_owner import BusinessOwner, VerificationStatus
from src.core.entities.certificate import VerificationCertificate
from src.core.entities.document_verification import Document, DocumentStatus, DocumentVerification
from src.core.entities.verification_attempt import Decision, Sections, VerificationAttempt


def _uuid() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class BusinessOwnerRecord(Base):
    __tablename__ = "business_owners"

    id = Column(String(36), primary_key=True, default=_uuid)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), default="")
    preferred_language = Column(String(5), default="en")
    tax_id = Column(String(50), nullable=True)
    id_license_number = Column(String(50), nullable=True)

    verification_status = Column(String(30), nullable=False, default=VerificationStatus.UNVERIFIED.value, index=True)
    current_verification_attempt_id = Column(String(36), nullable=True)
    last_verified_at = Column(DateTime(timezone=True), nullable=True)
    verification_expires_at = Column(DateTime(timezone=True), nullable=True)

    assigned_manager_id = Column(String(36), nullable=False, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    version = Column(Integer, nullable=False)

    # UPDATE ... WHERE version = :old, then version + 1
    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<BusinessOwner {self.id} [{self.verification_status}] v{self.version}>"

    @classmethod
    def from_entity(cls, owner: BusinessOwner) -> "BusinessOwnerRecord":
        record = cls(id=owner.id, created_at=owner.created_at)
        record.apply(owner)
        return record

    def apply(self, owner: BusinessOwner) -> None:
        """Copy mutable entity fields onto the row (version is managed by the mapper)."""
        self.first_name = owner.first_name
        self.last_name = owner.last_name
        self.email = owner.email
        self.preferred_language = owner.preferred_language
        self.tax_id = owner.tax_id
        self.id_license_number = owner.id_license_number
        self.verification_status = owner.verification_status.value
        self.current_verification_attempt_id = owner.current_verification_attempt_id
        self.last_verified_at = owner.last_verified_at
        self.verification_expires_at = owner.verification_expires_at
        self.assigned_manager_id = owner.assigned_manager_id
        self.deleted_at = owner.deleted_at

    def to_entity(self) -> BusinessOwner:
        return BusinessOwner(
            id=self.id,
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email or "",
            preferred_language=self.preferred_language or "en",
            tax_id=self.tax_id,
            id_license_number=self.id_license_number,
            verification_status=VerificationStatus(self.verification_status),
            current_verification_attempt_id=self.current_verification_attempt_id,
            last_verified_at=as_utc(self.last_verified_at),
            verification_expires_at=as_utc(self.verification_expires_at),
            assigned_manager_id=self.assigned_manager_id,
            deleted_at=as_utc(self.deleted_at),
            version=self.version,
            created_at=as_utc(self.created_at),
        )


class VerificationAttemptRecord(Base):
    __tablename__ = "verification_attempts"

    id = Column(String(36), primary_key=True, default=_uuid)
    business_owner_id = Column(String(36), ForeignKey("business_owners.id"), nullable=False, index=True)
    # Equals business_owner_id while open, NULL once completed.
    # Unique => at most one open attempt per owner, enforced by the database.
    open_owner_id = Column(String(36), unique=True, nullable=True)
    initiated_by = Column(String(36), nullable=False)

    sections = Column(JSON, default=dict)
    draft_data = Column(JSON, default=dict)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    last_updated = Column(DateTime(timezone=True), default=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True, index=True)
    decision = Column(String(20), nullable=True)
    decision_reason = Column(Text, nullable=True)

    def __repr__(self):
        state = self.decision or "OPEN"
        return f"<VerificationAttempt {self.id} owner={self.business_owner_id} [{state}]>"

    @classmethod
    def from_entity(cls, attempt: VerificationAttempt) -> "VerificationAttemptRecord":
        record = cls(
            id=attempt.id,
            business_owner_id=attempt.business_owner_id,
            initiated_by=attempt.initiated_by,
            created_at=attempt.created_at,
        )
        record.apply(attempt)
        return record

    def apply(self, attempt: VerificationAttempt) -> None:
        self.sections = attempt.sections.to_dict()
        self.draft_data = dict(attempt.draft_data or {})
        self.last_updated = attempt.last_updated
        self.completed_at = attempt.completed_at
        self.decision = attempt.decision.value if attempt.decision else None
        self.decision_reason = attempt.decision_reason
        self.open_owner_id = attempt.business_owner_id if attempt.is_open else None

    def to_entity(self) -> VerificationAttempt:
        return VerificationAttempt(
            id=self.id,
            business_owner_id=self.business_owner_id,
            initiated_by=self.initiated_by,
            sections=Sections.from_dict(self.sections),
            draft_data=dict(self.draft_data or {}),
            created_at=as_utc(self.created_at),
            last_updated=as_utc(self.last_updated),
            completed_at=as_utc(self.completed_at),
            decision=Decision(self.decision) if self.decision else None,
            decision_reason=self.decision_reason,
        )


class DocumentRecord(Base):
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=_uuid)
    owner_id = Column(String(36), ForeignKey("business_owners.id"), nullable=False, index=True)
    filename = Column(String(255), nullable=False)
    category = Column(String(50), nullable=False, index=True)
    content_type = Column(String(100), default="application/pdf")
    storage_path = Column(String(500), default="")
    content_hash = Column(String(64), default="")
    uploaded_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Document {self.id} {self.category}/{self.filename}>"

    @classmethod
    def from_entity(cls, document: Document) -> "DocumentRecord":
        return cls(
            id=document.id,
            owner_id=document.owner_id,
            filename=document.filename,
            category=document.category,
            content_type=document.content_type,
            storage_path=document.storage_path,
            content_hash=document.content_hash,
            uploaded_at=document.uploaded_at,
            deleted_at=document.deleted_at,
        )

    def to_entity(self) -> Document:
        return Document(
            id=self.id,
            owner_id=self.owner_id,
            filename=self.filename,
            category=self.category,
            content_type=self.content_type or "",
            storage_path=self.storage_path or "",
            content_hash=self.content_hash or "",
            uploaded_at=as_utc(self.uploaded_at),
            deleted_at=as_utc(self.deleted_at),
        )


class DocumentVerificationRecord(Base):
    __tablename__ = "document_verifications"
    __table_args__ = (
        UniqueConstraint("verification_id", "document_id", name="uq_document_verification"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    verification_id = Column(String(36), ForeignKey("verification_attempts.id"), nullable=False, index=True)
    document_id = Column(String(36), ForeignKey("documents.id"), nullable=False, index=True)
    status = Column(String(30), nullable=False)
    notes = Column(Text, nullable=True)
    verified_by = Column(String(36), nullable=False)
    verified_at = Column(DateTime(timezone=True), default=utcnow)

    def __repr__(self):
        return f"<DocumentVerification {self.verification_id}/{self.document_id} [{self.status}]>"

    def to_entity(self) -> DocumentVerification:
        return DocumentVerification(
            id=self.id,
            verification_id=self.verification_id,
            document_id=self.document_id,
            status=DocumentStatus(self.status),
            notes=self.notes,
            verified_by=self.verified_by,
            verified_at=as_utc(self.verified_at),
        )


class VerificationCertificateRecord(Base):
    __tablename__ = "verification_certificates"

    id = Column(String(36), primary_key=True, default=_uuid)
    verification_id = Column(String(36), ForeignKey("verification_attempts.id"), unique=True, nullable=False)
    certificate_number = Column(String(30), unique=True, nullable=False)
    issued_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    document_path = Column(String(500), nullable=False)
    verification_hash = Column(String(64), nullable=False, index=True)
    validation_url = Column(String(500), nullable=False)
    qr_code_data = Column(Text, nullable=False)

    is_revoked = Column(Boolean, default=False, nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    revoked_reason = Column(Text, nullable=True)
    revoked_by = Column(String(36), nullable=True)

    def __repr__(self):
        flag = " REVOKED" if self.is_revoked else ""
        return f"<Certificate {self.certificate_number}{flag}>"

    @classmethod
    def from_entity(cls, certificate: VerificationCertificate) -> "VerificationCertificateRecord":
        record = cls(
            id=certificate.id,
            verification_id=certificate.verification_id,
            certificate_number=certificate.certificate_number,
            issued_at=certificate.issued_at,
            expires_at=certificate.expires_at,
            document_path=certificate.document_path,
            verification_hash=certificate.verification_hash,
            validation_url=certificate.validation_url,
            qr_code_data=certificate.qr_code_data,
        )
        record.apply_revocation(certificate)
        return record

    def apply_revocation(self, certificate: VerificationCertificate) -> None:
        self.is_revoked = certificate.is_revoked
        self.revoked_at = certificate.revoked_at
        self.revoked_reason = certificate.revoked_reason
        self.revoked_by = certificate.revoked_by

    def to_entity(self) -> VerificationCertificate:
        return VerificationCertificate(
            id=self.id,
            verification_id=self.verification_id,
            certificate_number=self.certificate_number,
            issued_at=as_utc(self.issued_at),
            expires_at=as_utc(self.expires_at),
            document_path=self.document_path,
            verification_hash=self.verification_hash,
            validation_url=self.validation_url,
            qr_code_data=self.qr_code_data,
            is_revoked=bool(self.is_revoked),
            revoked_at=as_utc(self.revoked_at),
            revoked_reason=self.revoked_reason,
            revoked_by=self.revoked_by,
        )


class ActivityLogRecord(Base):
    __tablename__ = "activity_logs"

    id = Column(String(36), primary_key=True, default=_uuid)
    business_owner_id = Column(String(36), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(36), nullable=True, index=True)
    action = Column(String(60), nullable=False, index=True)
    action_description = Column(Text, default="")
    performed_by = Column(String(36), nullable=False)
    performed_by_name = Column(String(200), nullable=True)
    performed_by_role = Column(String(50), nullable=True)
    details = Column(JSON, default=dict)
    performed_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    def __repr__(self):
        return f"<Activity {self.entity_type}:{self.action} owner={self.business_owner_id}>"

    @classmethod
    def from_entity(cls, entry: ActivityLogEntry) -> "ActivityLogRecord":
        return cls(
            id=entry.id,
            business_owner_id=entry.business_owner_id,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            action=entry.action,
            action_description=entry.action_description,
            performed_by=entry.performed_by,
            performed_by_name=entry.performed_by_name,
            performed_by_role=entry.performed_by_role,
            details=entry.details,
            performed_at=entry.performed_at,
        )

    def to_entity(self) -> ActivityLogEntry:
        return ActivityLogEntry(
            id=self.id,
            business_owner_id=self.business_owner_id,
            entity_type=self.entity_type,
            entity_id=self.entity_id,
            action=self.action,
            action_description=self.action_description or "",
            performed_by=self.performed_by,
            performed_by_name=self.performed_by_name,
            performed_by_role=self.performed_by_role,
            details=dict(self.details or {}),
            performed_at=as_utc(self.performed_at),
        )


class VerificationHistoryLogRecord(Base):
    __tablename__ = "verification_history_logs"

    id = Column(String(36), primary_key=True, default=_uuid)
    verification_id = Column(String(36), ForeignKey("verification_attempts.id"), nullable=False, index=True)
    action = Column(String(60), nullable=False)
    performed_by = Column(String(36), nullable=False)
    details = Column(JSON, default=dict)
    step_number = Column(Integer, nullable=True)
    performed_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    def __repr__(self):
        return f"<History {self.verification_id}:{self.action}>"

    @classmethod
    def from_entity(cls, entry: VerificationHistoryEntry) -> "VerificationHistoryLogRecord":
        return cls(
            id=entry.id,
            verification_id=entry.verification_id,
            action=entry.action,
            performed_by=entry.performed_by,
            details=entry.details,
            step_number=entry.step_number,
            performed_at=entry.performed_at,
        )

    def to_entity(self) -> VerificationHistoryEntry:
        return VerificationHistoryEntry(
            id=self.id,
            verification_id=self.verification_id,
            action=self.action,
            performed_by=self.performed_by,
            details=dict(self.details or {}),
            step_number=self.step_number,
            performed_at=as_utc(self.performed_at),
        )
