"""
Use Case: Verification Attempt Engine

Lifecycle of a verification attempt: OPEN (created, draft-saved, documents
reviewed in any order) → COMPLETED (decision fixed, terminal).

submit_decision commits attempt completion, owner update, document decisions
and the history/activity entries as one transaction. Certificate issuance
runs inside a savepoint of that transaction and may fail alone; the
notification is sent after commit and may fail alone.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from src.core.clock import timestamp, utcnow
from src.core.errors import ConcurrencyConflict, InvalidStateError, NotFoundError, ValidationError
from src.core.entities.business_owner import BusinessOwner, VerificationStatus
from src.core.entities.verification_attempt import Decision, Sections, VerificationAttempt
from src.core.interfaces.notifier import INotifier
from src.core.interfaces.unit_of_work import IUnitOfWork, Transaction
from src.core.use_cases.audit_log import AuditLog
from src.core.use_cases.certificate_issuer import CertificateIssuer
from src.core.use_cases.document_tracker import (
    DocumentDecision,
    DocumentVerificationTracker,
    TrackedDocument,
    parse_document_status,
)

logger = logging.getLogger(__name__)

MANAGER_ROLE = "permit_manager"
RECENT_ATTEMPTS = 5
HISTORY_PAGE = 20


@dataclass
class DraftSaveResult:
    attempt_id: str
    saved_at: datetime


@dataclass
class DecisionResult:
    verification_id: str
    decision: Decision
    completed_at: datetime
    certificate_id: str | None
    owner: BusinessOwner                 # masked


class VerificationAttemptEngine:
    """
    Use Case: orquestra tentativas de verificação.

    Dependency Injection: todas as dependências vêm pelo construtor.
    The engine keeps no state between calls; every method is one request.
    """

    def __init__(
        self,
        uow: IUnitOfWork,
        tracker: DocumentVerificationTracker,
        issuer: CertificateIssuer,
        notifier: INotifier,
        audit_log: AuditLog,
        verification_validity_days: int = 365,
        expiry_warning_days: int = 30,
    ):
        self._uow = uow
        self._tracker = tracker
        self._issuer = issuer
        self._notifier = notifier
        self._audit = audit_log
        self._validity = timedelta(days=verification_validity_days)
        self._expiry_warning = timedelta(days=expiry_warning_days)

    # ── Helpers ────────────────────────────────────────────

    @staticmethod
    def _authorize(t: Transaction, owner_id: str, actor_id: str) -> BusinessOwner:
        owner = t.owners.get_managed(owner_id, actor_id)
        if owner is None:
            raise NotFoundError("Business owner not found or not managed by this user")
        return owner

    @staticmethod
    def _owned_attempt(t: Transaction, owner_id: str, verification_id: str) -> VerificationAttempt:
        attempt = t.attempts.get(verification_id)
        if attempt is None or attempt.business_owner_id != owner_id:
            raise NotFoundError("Verification attempt not found")
        return attempt

    def _open_attempt(self, t: Transaction, owner: BusinessOwner, actor_id: str) -> VerificationAttempt:
        """Find the owner's open attempt or create it (find-or-create, never blind insert)."""
        existing = t.attempts.find_open(owner.id)
        if existing:
            return existing

        attempt = t.attempts.add(
            VerificationAttempt(id=str(uuid.uuid4()), business_owner_id=owner.id, initiated_by=actor_id)
        )
        owner.current_verification_attempt_id = attempt.id
        owner.verification_status = VerificationStatus.PENDING_VERIFICATION
        t.owners.save(owner)

        self._audit.log_verification_history(
            attempt.id, "VERIFICATION_STARTED", actor_id, details={"timestamp": timestamp()}, tx=t
        )
        return attempt

    @staticmethod
    def _retry_on_conflict(operation: Callable):
        """Run once more when a concurrent request created the attempt first."""
        try:
            return operation()
        except ConcurrencyConflict as e:
            logger.info(f"Retrying after concurrent write: {e}")
            return operation()

    @staticmethod
    def _notify(send: Callable, description: str) -> None:
        try:
            send()
        except Exception:
            logger.exception(f"Notification failed: {description}")

    # ── Commands ───────────────────────────────────────────

    def create_attempt(self, owner_id: str, actor_id: str) -> VerificationAttempt:
        """
        Start a verification attempt, or return the one already open.

        Raises:
            NotFoundError: owner missing, deleted, or not managed by actor.
        """
        def _create():
            with self._uow.begin() as t:
                owner = self._authorize(t, owner_id, actor_id)
                return self._open_attempt(t, owner, actor_id)

        return self._retry_on_conflict(_create)

    def save_draft(self, owner_id: str, actor_id: str, draft_data: dict) -> DraftSaveResult:
        """
        Overwrite the open attempt's draft (creating the attempt if needed).

        Cheap and idempotent: the wizard calls it on every step change and on
        a timer, and once more before an idle session is closed.
        """
        if not isinstance(draft_data, dict):
            raise ValidationError("draft_data must be an object")

        def _save():
            with self._uow.begin() as t:
                owner = self._authorize(t, owner_id, actor_id)
                attempt = self._open_attempt(t, owner, actor_id)
                attempt.draft_data = draft_data
                attempt.last_updated = utcnow()
                attempt = t.attempts.save(attempt)

                self._audit.log_event(
                    entity_type="verification_attempt",
                    entity_id=attempt.id,
                    action="DRAFT_SAVED",
                    performed_by=actor_id,
                    business_owner_id=owner_id,
                    details={"timestamp": timestamp(), "stepsSaved": list(draft_data.keys())},
                    tx=t,
                )
                return DraftSaveResult(attempt_id=attempt.id, saved_at=attempt.last_updated)

        return self._retry_on_conflict(_save)

    def update_document_verification(
        self,
        owner_id: str,
        actor_id: str,
        verification_id: str,
        document_id: str,
        status: str,
        notes: str | None = None,
    ) -> TrackedDocument:
        """
        Record the decision for one document of an open attempt.

        Raises:
            NotFoundError: owner or attempt not visible to actor, or the document
                is not a live document of this owner.
            InvalidStateError: attempt already completed.
            ValidationError: unknown status.
        """
        parsed_status = parse_document_status(status)

        with self._uow.begin() as t:
            self._authorize(t, owner_id, actor_id)
            self._owned_attempt(t, owner_id, verification_id)
            tracked = self._tracker.upsert(verification_id, document_id, parsed_status, notes, actor_id, tx=t)

            self._audit.log_event(
                entity_type="document_verification",
                entity_id=tracked.verification.id,
                action="DOCUMENT_VERIFICATION_UPDATED",
                performed_by=actor_id,
                business_owner_id=owner_id,
                details={
                    "documentId": document_id,
                    "status": parsed_status.value,
                    "notes": notes,
                    "requiresNote": tracked.requires_note,
                    "timestamp": tracked.verification.verified_at.isoformat(),
                },
                tx=t,
            )

        self._notify(
            lambda: self._notifier.send_document_status(owner_id, document_id, parsed_status.value),
            f"document {document_id} status {parsed_status.value} for owner {owner_id}",
        )
        return tracked

    def submit_decision(
        self,
        owner_id: str,
        actor_id: str,
        verification_id: str,
        decision: Decision | str,
        decision_reason: str | None,
        sections: Sections | dict,
        document_verifications: list[DocumentDecision] | None = None,
    ) -> DecisionResult:
        """
        Complete an attempt with a final decision.

        Raises:
            NotFoundError: owner, attempt or a listed document not visible to actor.
            InvalidStateError: attempt already completed.
            ValidationError: bad decision/sections, or REJECTED/NEEDS_INFO
                without a reason.
        """
        decision, sections = self._validate_decision(decision, decision_reason, sections)

        with self._uow.begin() as t:
            # 1. authorization + attempt lookup
            owner = self._authorize(t, owner_id, actor_id)
            attempt = self._owned_attempt(t, owner_id, verification_id)
            if not attempt.is_open:
                raise InvalidStateError("This verification attempt has already been completed")

            # 2. document decisions
            if document_verifications:
                self._tracker.upsert_many(verification_id, document_verifications, actor_id, tx=t)

            # 3. complete the attempt
            now = utcnow()
            attempt.completed_at = now
            attempt.last_updated = now
            attempt.decision = decision
            attempt.decision_reason = decision_reason
            attempt.sections = sections
            attempt = t.attempts.save(attempt)

            # 4. owner status; no lock-out, a new attempt may start right away
            owner.verification_status = VerificationStatus(decision.value)
            owner.current_verification_attempt_id = None
            if decision == Decision.VERIFIED:
                owner.last_verified_at = now
                owner.verification_expires_at = now + self._validity
            owner = t.owners.save(owner)

            # 5. history + activity, atomic with the above
            action = f"VERIFICATION_{decision.value}"
            history = self._audit.write_history(
                t, verification_id, action, actor_id,
                details={
                    "timestamp": now.isoformat(),
                    "reason": decision_reason,
                    "sectionResults": sections.to_dict(),
                },
            )
            self._audit.write_activity(
                t,
                business_owner_id=owner_id,
                entity_type="verification_attempt",
                entity_id=verification_id,
                action=action,
                performed_by=actor_id,
                performed_by_role=MANAGER_ROLE,
                details={
                    "verificationId": verification_id,
                    "decision": decision.value,
                    "reason": decision_reason,
                    "sectionsVerified": sections.names(),
                    "verificationHistoryLogId": history.id,
                },
            )

            # 6. certificate; failure must not undo 1-5
            certificate_id = None
            if decision == Decision.VERIFIED:
                try:
                    with t.savepoint():
                        certificate_id = self._issuer.generate(verification_id, actor_id, tx=t).id
                except Exception:
                    logger.exception(
                        f"Certificate generation failed for VERIFIED attempt {verification_id}; "
                        f"verification recorded without certificate"
                    )

        # 7. notification, after commit
        self._notify(
            lambda: self._notifier.send_verification_decision(owner_id, decision.value, decision_reason),
            f"decision {decision.value} for owner {owner_id}",
        )
        logger.info(f"Attempt {verification_id} completed as {decision.value} by {actor_id}")

        return DecisionResult(
            verification_id=verification_id,
            decision=decision,
            completed_at=attempt.completed_at,
            certificate_id=certificate_id,
            owner=owner.masked(),
        )

    @staticmethod
    def _validate_decision(decision, decision_reason, sections) -> tuple[Decision, Sections]:
        try:
            decision = Decision(decision)
        except ValueError:
            raise ValidationError(f"Unknown decision: {decision!r}") from None

        if decision != Decision.VERIFIED and not (decision_reason or "").strip():
            raise ValidationError(f"A decision reason is required for {decision.value}")

        if sections is None:
            raise ValidationError("sections are required")
        if not isinstance(sections, Sections):
            try:
                sections = Sections.from_dict(sections)
            except (ValueError, TypeError, AttributeError) as e:
                raise ValidationError(f"Invalid sections: {e}") from None
        return decision, sections

    # ── Queries ────────────────────────────────────────────

    def get_verification_status(
        self,
        owner_id: str,
        actor_id: str,
        include_documents: bool = False,
        include_history: bool = False,
    ) -> dict:
        """Status panel: owner status, expiry metrics, current and recent attempts."""
        with self._uow.begin() as t:
            owner = self._authorize(t, owner_id, actor_id)
            current = (
                t.attempts.get(owner.current_verification_attempt_id)
                if owner.current_verification_attempt_id else None
            )
            recent = t.attempts.list_completed(owner_id, limit=RECENT_ATTEMPTS)
            latest_certificate = t.certificates.get_by_verification(recent[0].id) if recent else None

            now = utcnow()
            expires = owner.verification_expires_at
            metrics = {
                "total_attempts": len(recent),
                "last_verified_at": owner.last_verified_at,
                "verification_expires_at": expires,
                "days_until_expiry": math.ceil((expires - now).total_seconds() / 86400) if expires else None,
                "is_expiring": bool(expires and expires < now + self._expiry_warning),
                "certificate_id": latest_certificate.id if latest_certificate else None,
            }

            breakdown = None
            history = None
            if current and include_documents:
                breakdown = self._tracker.compute_breakdown(current.id, tx=t)
            if current and include_history:
                history = t.audit.list_history(current.id, limit=HISTORY_PAGE)

        return {
            "owner_id": owner.id,
            "owner_name": owner.full_name,
            "verification_status": owner.verification_status,
            "metrics": metrics,
            "current_attempt": current,
            "recent_attempts": recent,
            "document_breakdown": breakdown,
            "history": history,
        }

    def get_verification_documents(self, owner_id: str, verification_id: str, actor_id: str) -> dict:
        """Owner's live documents joined with this attempt's decisions."""
        with self._uow.begin() as t:
            self._authorize(t, owner_id, actor_id)
            self._owned_attempt(t, owner_id, verification_id)
            documents = t.documents.list_for_owner(owner_id)
            decisions = {dv.document_id: dv for dv in t.document_verifications.list_for_attempt(verification_id)}

        rows = []
        by_category: dict[str, list[dict]] = {}
        for document in documents:
            decision = decisions.get(document.id)
            row = {
                "document": document,
                "verification_status": decision.status.value if decision else None,
                "verification_notes": decision.notes if decision else None,
                "verified_at": decision.verified_at if decision else None,
                "verified_by": decision.verified_by if decision else None,
            }
            rows.append(row)
            by_category.setdefault(document.category, []).append(row)

        return {
            "verification_id": verification_id,
            "documents": rows,
            "documents_by_category": by_category,
            "total_documents": len(documents),
            "verified_documents": len(decisions),
        }
