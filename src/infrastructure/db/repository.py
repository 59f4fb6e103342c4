"""
SQLAlchemy repositories, one per aggregate, all sharing the caller's session.

Handles:
  - Owner reads scoped to the assigned manager, optimistic version checks
  - Find-or-create of the single open attempt (unique `open_owner_id`)
  - Document verification upserts
  - Certificate lookups by id / attempt / hash
  - Append-only audit tables
"""

import logging

from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from src.core.errors import ConcurrencyConflict, NotFoundError
from src.core.entities.audit import ActivityLogEntry, VerificationHistoryEntry
from src.core.entities.business_owner import BusinessOwner
from src.core.entities.certificate import VerificationCertificate
from src.core.entities.document_verification import Document, DocumentVerification
from src.core.entities.verification_attempt import Decision, VerificationAttempt
from src.core.interfaces.repositories import (
    IAttemptRepository,
    IAuditRepository,
    ICertificateRepository,
    IDocumentRepository,
    IDocumentVerificationRepository,
    IOwnerRepository,
)
from src.infrastructure.db.models import (
    ActivityLogRecord,
    BusinessOwnerRecord,
    DocumentRecord,
    DocumentVerificationRecord,
    VerificationAttemptRecord,
    VerificationCertificateRecord,
    VerificationHistoryLogRecord,
)

logger = logging.getLogger(__name__)


class OwnerRepository(IOwnerRepository):
    """Repository for business owners."""

    def __init__(self, session: Session):
        self._db = session

    def get(self, owner_id: str) -> BusinessOwner | None:
        record = self._db.get(BusinessOwnerRecord, owner_id)
        return record.to_entity() if record else None

    def get_managed(self, owner_id: str, manager_id: str) -> BusinessOwner | None:
        record = (
            self._db.query(BusinessOwnerRecord)
            .filter_by(id=owner_id, assigned_manager_id=manager_id, deleted_at=None)
            .first()
        )
        return record.to_entity() if record else None

    def add(self, owner: BusinessOwner) -> BusinessOwner:
        record = BusinessOwnerRecord.from_entity(owner)
        self._db.add(record)
        self._db.flush()
        return record.to_entity()

    def save(self, owner: BusinessOwner) -> BusinessOwner:
        record = self._db.get(BusinessOwnerRecord, owner.id)
        if record is None:
            raise NotFoundError("Business owner not found")
        if record.version != owner.version:
            raise ConcurrencyConflict(
                f"Business owner {owner.id} changed concurrently "
                f"(expected v{owner.version}, found v{record.version})"
            )
        record.apply(owner)
        try:
            self._db.flush()
        except StaleDataError as e:
            raise ConcurrencyConflict(f"Business owner {owner.id} changed concurrently") from e
        owner.version = record.version
        return record.to_entity()


class AttemptRepository(IAttemptRepository):
    """Repository for verification attempts."""

    def __init__(self, session: Session):
        self._db = session

    def get(self, attempt_id: str) -> VerificationAttempt | None:
        record = self._db.get(VerificationAttemptRecord, attempt_id)
        return record.to_entity() if record else None

    def find_open(self, owner_id: str) -> VerificationAttempt | None:
        record = self._db.query(VerificationAttemptRecord).filter_by(open_owner_id=owner_id).first()
        return record.to_entity() if record else None

    def add(self, attempt: VerificationAttempt) -> VerificationAttempt:
        record = VerificationAttemptRecord.from_entity(attempt)
        try:
            with self._db.begin_nested():
                self._db.add(record)
        except IntegrityError as e:
            logger.info(f"Open attempt already exists for owner {attempt.business_owner_id}")
            raise ConcurrencyConflict(
                f"Owner {attempt.business_owner_id} already has an open verification attempt"
            ) from e
        logger.info(f"Created verification attempt {record.id} for owner {record.business_owner_id}")
        return record.to_entity()

    def save(self, attempt: VerificationAttempt) -> VerificationAttempt:
        record = self._db.get(VerificationAttemptRecord, attempt.id)
        if record is None:
            raise NotFoundError("Verification attempt not found")
        record.apply(attempt)
        self._db.flush()
        return record.to_entity()

    def list_completed(self, owner_id: str, limit: int = 5) -> list[VerificationAttempt]:
        records = (
            self._db.query(VerificationAttemptRecord)
            .filter(
                VerificationAttemptRecord.business_owner_id == owner_id,
                VerificationAttemptRecord.completed_at.isnot(None),
            )
            .order_by(desc(VerificationAttemptRecord.completed_at))
            .limit(limit)
            .all()
        )
        return [r.to_entity() for r in records]

    def latest_verified(self, owner_id: str) -> VerificationAttempt | None:
        record = (
            self._db.query(VerificationAttemptRecord)
            .filter_by(business_owner_id=owner_id, decision=Decision.VERIFIED.value)
            .order_by(desc(VerificationAttemptRecord.completed_at))
            .first()
        )
        return record.to_entity() if record else None


class DocumentRepository(IDocumentRepository):
    """Repository for uploaded documents."""

    def __init__(self, session: Session):
        self._db = session

    def get(self, document_id: str) -> Document | None:
        record = self._db.get(DocumentRecord, document_id)
        return record.to_entity() if record else None

    def add(self, document: Document) -> Document:
        record = DocumentRecord.from_entity(document)
        self._db.add(record)
        self._db.flush()
        return record.to_entity()

    def list_for_owner(self, owner_id: str) -> list[Document]:
        records = (
            self._db.query(DocumentRecord)
            .filter_by(owner_id=owner_id, deleted_at=None)
            .order_by(desc(DocumentRecord.uploaded_at))
            .all()
        )
        return [r.to_entity() for r in records]


class DocumentVerificationRepository(IDocumentVerificationRepository):
    """Repository for per-document decisions."""

    def __init__(self, session: Session):
        self._db = session

    def get(self, verification_id: str, document_id: str) -> DocumentVerification | None:
        record = (
            self._db.query(DocumentVerificationRecord)
            .filter_by(verification_id=verification_id, document_id=document_id)
            .first()
        )
        return record.to_entity() if record else None

    def get_by_id(self, document_verification_id: str) -> DocumentVerification | None:
        record = self._db.get(DocumentVerificationRecord, document_verification_id)
        return record.to_entity() if record else None

    def upsert(self, verification: DocumentVerification) -> DocumentVerification:
        record = (
            self._db.query(DocumentVerificationRecord)
            .filter_by(verification_id=verification.verification_id, document_id=verification.document_id)
            .first()
        )
        if record is None:
            record = DocumentVerificationRecord(
                id=verification.id,
                verification_id=verification.verification_id,
                document_id=verification.document_id,
            )
            self._db.add(record)
        record.status = verification.status.value
        record.notes = verification.notes
        record.verified_by = verification.verified_by
        record.verified_at = verification.verified_at
        self._db.flush()
        return record.to_entity()

    def list_for_attempt(self, verification_id: str) -> list[DocumentVerification]:
        records = (
            self._db.query(DocumentVerificationRecord)
            .filter_by(verification_id=verification_id)
            .order_by(desc(DocumentVerificationRecord.verified_at))
            .all()
        )
        return [r.to_entity() for r in records]


class CertificateRepository(ICertificateRepository):
    """Repository for verification certificates."""

    def __init__(self, session: Session):
        self._db = session

    def get(self, certificate_id: str) -> VerificationCertificate | None:
        record = self._db.get(VerificationCertificateRecord, certificate_id)
        return record.to_entity() if record else None

    def get_by_verification(self, verification_id: str) -> VerificationCertificate | None:
        record = self._db.query(VerificationCertificateRecord).filter_by(verification_id=verification_id).first()
        return record.to_entity() if record else None

    def get_by_hash(self, verification_hash: str) -> VerificationCertificate | None:
        record = (
            self._db.query(VerificationCertificateRecord)
            .filter_by(verification_hash=verification_hash)
            .first()
        )
        return record.to_entity() if record else None

    def add(self, certificate: VerificationCertificate) -> VerificationCertificate:
        record = VerificationCertificateRecord.from_entity(certificate)
        try:
            with self._db.begin_nested():
                self._db.add(record)
        except IntegrityError as e:
            raise ConcurrencyConflict(
                f"Certificate {certificate.certificate_number} conflicts with an existing certificate"
            ) from e
        logger.info(f"Saved certificate {record.certificate_number} for attempt {record.verification_id}")
        return record.to_entity()

    def save(self, certificate: VerificationCertificate) -> VerificationCertificate:
        record = self._db.get(VerificationCertificateRecord, certificate.id)
        if record is None:
            raise NotFoundError("Certificate not found")
        record.apply_revocation(certificate)
        self._db.flush()
        return record.to_entity()


class AuditRepository(IAuditRepository):
    """Repository for the append-only audit tables."""

    def __init__(self, session: Session):
        self._db = session

    def add_activity(self, entry: ActivityLogEntry) -> ActivityLogEntry:
        record = ActivityLogRecord.from_entity(entry)
        self._db.add(record)
        self._db.flush()
        return record.to_entity()

    def add_history(self, entry: VerificationHistoryEntry) -> VerificationHistoryEntry:
        record = VerificationHistoryLogRecord.from_entity(entry)
        self._db.add(record)
        self._db.flush()
        return record.to_entity()

    def list_activity(self, owner_id: str, limit: int = 50, offset: int = 0) -> tuple[int, list[ActivityLogEntry]]:
        query = self._db.query(ActivityLogRecord).filter_by(business_owner_id=owner_id)
        total = query.count()
        records = query.order_by(desc(ActivityLogRecord.performed_at)).offset(offset).limit(limit).all()
        return total, [r.to_entity() for r in records]

    def list_history(self, verification_id: str, limit: int = 20) -> list[VerificationHistoryEntry]:
        records = (
            self._db.query(VerificationHistoryLogRecord)
            .filter_by(verification_id=verification_id)
            .order_by(desc(VerificationHistoryLogRecord.performed_at))
            .limit(limit)
            .all()
        )
        return [r.to_entity() for r in records]
