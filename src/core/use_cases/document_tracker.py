"""
Use Case: Document Verification Tracker

Per-document decision ledger scoped to one verification attempt.
"""

import logging
import uuid
from dataclasses import dataclass

from src.core.clock import utcnow
from src.core.errors import InvalidStateError, NotFoundError, ValidationError
from src.core.entities.document_verification import (
    NOTE_REQUIRED_STATUSES,
    DocumentStatus,
    DocumentVerification,
)
from src.core.interfaces.unit_of_work import IUnitOfWork, Transaction

logger = logging.getLogger(__name__)

UNCATEGORIZED = "uncategorized"


@dataclass
class DocumentDecision:
    """Input de uma decisão sobre um documento."""
    document_id: str
    status: DocumentStatus | str
    notes: str | None = None


@dataclass
class TrackedDocument:
    verification: DocumentVerification
    requires_note: bool         # advisory; the UI enforces it


def parse_document_status(status: DocumentStatus | str) -> DocumentStatus:
    try:
        return DocumentStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown document verification status: {status!r}") from None


class DocumentVerificationTracker:
    """
    Use Case: grava decisões por documento dentro de uma tentativa aberta.

    Rows are keyed by (verification_id, document_id). An upsert overwrites the
    previous decision; the audit log is the only record of earlier values.
    """

    def __init__(self, uow: IUnitOfWork):
        self._uow = uow

    @staticmethod
    def requires_note(status: DocumentStatus | str) -> bool:
        return parse_document_status(status) in NOTE_REQUIRED_STATUSES

    def upsert(
        self,
        verification_id: str,
        document_id: str,
        status: DocumentStatus | str,
        notes: str | None,
        actor_id: str,
        tx: Transaction | None = None,
    ) -> TrackedDocument:
        """
        Create or overwrite the decision for one document.

        Raises:
            NotFoundError: attempt does not exist, or the document is missing,
                deleted or belongs to another owner.
            InvalidStateError: attempt already completed.
            ValidationError: unknown status.
        """
        return self.upsert_many(
            verification_id, [DocumentDecision(document_id, status, notes)], actor_id, tx=tx
        )[0]

    def upsert_many(
        self,
        verification_id: str,
        decisions: list[DocumentDecision],
        actor_id: str,
        tx: Transaction | None = None,
    ) -> list[TrackedDocument]:
        parsed = [(d, parse_document_status(d.status)) for d in decisions]

        with self._uow.begin(tx) as t:
            attempt = t.attempts.get(verification_id)
            if attempt is None:
                raise NotFoundError("Verification attempt not found")
            if not attempt.is_open:
                raise InvalidStateError("This verification attempt has already been completed")

            for decision, _ in parsed:
                document = t.documents.get(decision.document_id)
                if (
                    document is None
                    or document.deleted_at is not None
                    or document.owner_id != attempt.business_owner_id
                ):
                    raise NotFoundError(f"Document {decision.document_id} not found for this owner")

            tracked = []
            for decision, status in parsed:
                existing = t.document_verifications.get(verification_id, decision.document_id)
                saved = t.document_verifications.upsert(
                    DocumentVerification(
                        id=existing.id if existing else str(uuid.uuid4()),
                        verification_id=verification_id,
                        document_id=decision.document_id,
                        status=status,
                        notes=decision.notes,
                        verified_by=actor_id,
                        verified_at=utcnow(),
                    )
                )
                needs_note = status in NOTE_REQUIRED_STATUSES
                if needs_note and not (decision.notes or "").strip():
                    logger.warning(
                        f"Document {decision.document_id} marked {status.value} without a note "
                        f"(attempt {verification_id})"
                    )
                tracked.append(TrackedDocument(verification=saved, requires_note=needs_note))
            return tracked

    def compute_breakdown(self, verification_id: str, tx: Transaction | None = None) -> dict[str, dict]:
        """
        Group an attempt's decisions by document category.

        Returns:
            {category: {"counts": {status: n}, "documents": [row, ...]}}
        """
        with self._uow.begin(tx) as t:
            breakdown: dict[str, dict] = {}
            for verification in t.document_verifications.list_for_attempt(verification_id):
                document = t.documents.get(verification.document_id)
                category = document.category if document else UNCATEGORIZED
                group = breakdown.setdefault(category, {"counts": {}, "documents": []})
                counts = group["counts"]
                counts[verification.status.value] = counts.get(verification.status.value, 0) + 1
                group["documents"].append({
                    "document_id": verification.document_id,
                    "filename": document.filename if document else None,
                    "status": verification.status.value,
                    "notes": verification.notes,
                    "verified_at": verification.verified_at,
                })
            return breakdown
