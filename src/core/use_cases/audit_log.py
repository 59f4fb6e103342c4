"""
Use Case: Audit Log

Append-only trail of what happened to an owner and its sub-entities.

Two write paths:
  - `write_activity` / `write_history`: strict, used inside a caller's
    transaction when the entry must land atomically with the change.
  - `log_event` / `log_verification_history`: best-effort. Failures are
    logged and returned as AuditFailure, never raised, so auditing cannot
    break the primary operation.
"""

import logging
import uuid
from typing import Callable

from src.core.errors import NotFoundError
from src.core.entities.audit import ActivityLogEntry, AuditFailure, VerificationHistoryEntry
from src.core.interfaces.unit_of_work import IUnitOfWork, Transaction

logger = logging.getLogger(__name__)


def _reason(details: dict) -> str:
    return details.get("reason") or "No reason provided"


ACTION_DESCRIPTIONS: dict[tuple[str, str], Callable[[dict], str]] = {
    ("business_owner", "CREATE"): lambda d: "Business owner profile created",
    ("business_owner", "UPDATE"): lambda d: "Business owner profile updated - "
    + (", ".join(d["fieldChanges"].keys()) if d.get("fieldChanges") else "fields"),
    ("business_owner", "DELETE"): lambda d: f"Business owner profile deleted - {_reason(d)}",
    ("document", "CREATE"): lambda d: f"Document uploaded - {d.get('filename', '')} ({d.get('category') or 'Unknown category'})",
    ("document", "UPDATE"): lambda d: f"Document updated - {d.get('filename', '')}",
    ("document", "DELETE"): lambda d: f"Document deleted - {d.get('filename', '')}",
    ("document", "VERIFY"): lambda d: f"Document verified - {d.get('status') or 'Status unknown'}",
    ("document", "DOCUMENT_VERIFICATION_NOTIFICATION"): lambda d: "Sent document verification notification"
    + (f" for {d['category']}" if d.get("category") else ""),
    ("document_verification", "DOCUMENT_VERIFICATION_UPDATED"): lambda d: f"Document verification updated - {d.get('status') or 'Status unknown'}",
    ("verification_attempt", "CREATED"): lambda d: "Verification attempt started",
    ("verification_attempt", "VERIFICATION_STARTED"): lambda d: "Verification attempt started",
    ("verification_attempt", "UPDATED"): lambda d: "Verification information updated",
    ("verification_attempt", "DRAFT_SAVED"): lambda d: "Verification draft saved",
    ("verification_attempt", "VERIFICATION_VERIFIED"): lambda d: "Verification approved",
    ("verification_attempt", "VERIFICATION_REJECTED"): lambda d: f"Verification rejected - {_reason(d)}",
    ("verification_attempt", "VERIFICATION_NEEDS_INFO"): lambda d: f"Verification needs additional information - {_reason(d)}",
    ("verification_certificate", "CREATE"): lambda d: "Verification certificate generated",
    ("verification_certificate", "REVOKE"): lambda d: f"Certificate revoked - {_reason(d)}",
    ("notification", "SEND_VERIFICATION_NOTIFICATION"): lambda d: f"Sent {str(d.get('decision', '')).lower()} notification"
    + (f" to {d['recipient']}" if d.get("recipient") else ""),
}


def describe_action(entity_type: str, action: str, details: dict | None = None) -> str:
    """Human-readable description for the activity feed."""
    template = ACTION_DESCRIPTIONS.get((entity_type, action))
    if template is None:
        return f"{action} {entity_type}"
    return template(details or {})


class AuditLog:
    """
    Use Case: grava e consulta o histórico de auditoria.

    Dependency Injection: the unit of work comes through the constructor.
    """

    def __init__(self, uow: IUnitOfWork):
        self._uow = uow

    # ── Strict writes (caller's transaction) ───────────────

    def write_activity(
        self,
        tx: Transaction,
        business_owner_id: str,
        entity_type: str,
        entity_id: str | None,
        action: str,
        performed_by: str,
        details: dict | None = None,
        performed_by_name: str | None = None,
        performed_by_role: str | None = None,
    ) -> ActivityLogEntry:
        details = details or {}
        entry = ActivityLogEntry(
            id=str(uuid.uuid4()),
            business_owner_id=business_owner_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            action_description=describe_action(entity_type, action, details),
            performed_by=performed_by,
            performed_by_name=performed_by_name,
            performed_by_role=performed_by_role,
            details=details,
        )
        return tx.audit.add_activity(entry)

    def write_history(
        self,
        tx: Transaction,
        verification_id: str,
        action: str,
        performed_by: str,
        details: dict | None = None,
        step_number: int | None = None,
    ) -> VerificationHistoryEntry:
        entry = VerificationHistoryEntry(
            id=str(uuid.uuid4()),
            verification_id=verification_id,
            action=action,
            performed_by=performed_by,
            details=details or {},
            step_number=step_number,
        )
        return tx.audit.add_history(entry)

    # ── Best-effort writes ─────────────────────────────────

    def log_event(
        self,
        entity_type: str,
        entity_id: str | None,
        action: str,
        performed_by: str,
        details: dict | None = None,
        business_owner_id: str | None = None,
        performed_by_name: str | None = None,
        performed_by_role: str | None = None,
        tx: Transaction | None = None,
    ) -> ActivityLogEntry | AuditFailure:
        """
        Log an event to the activity feed.

        Args:
            entity_type: ex "verification_attempt", "document".
            entity_id: Id of the entity acted on.
            action: ex "DRAFT_SAVED".
            performed_by: Actor id.
            details: Structured, JSON-serialisable context.
            business_owner_id: Derived from the entity when omitted.
            tx: Join this transaction (inside a savepoint) instead of opening one.

        Returns:
            The stored entry, or AuditFailure when logging failed.
        """
        try:
            with self._uow.begin(tx) as t:
                with t.savepoint():
                    owner_id = business_owner_id or self._resolve_owner(t, entity_type, entity_id)
                    if not owner_id:
                        raise ValueError("business_owner_id is required for audit logging")
                    return self.write_activity(
                        t, owner_id, entity_type, entity_id, action, performed_by,
                        details=details,
                        performed_by_name=performed_by_name,
                        performed_by_role=performed_by_role,
                    )
        except Exception as e:
            logger.exception(f"Audit logging error for {entity_type}:{action} ({entity_id})")
            return AuditFailure(error=str(e) or e.__class__.__name__)

    def log_verification_history(
        self,
        verification_id: str,
        action: str,
        performed_by: str,
        details: dict | None = None,
        step_number: int | None = None,
        tx: Transaction | None = None,
    ) -> VerificationHistoryEntry | AuditFailure:
        """Write to the attempt history and mirror it to the activity feed."""
        try:
            with self._uow.begin(tx) as t:
                with t.savepoint():
                    attempt = t.attempts.get(verification_id)
                    if attempt is None:
                        raise NotFoundError("Verification attempt not found")
                    history = self.write_history(t, verification_id, action, performed_by, details, step_number)
                self.log_event(
                    entity_type="verification_attempt",
                    entity_id=verification_id,
                    action=action,
                    performed_by=performed_by,
                    business_owner_id=attempt.business_owner_id,
                    details={
                        **(details or {}),
                        "verificationHistoryLogId": history.id,
                        "stepNumber": step_number,
                    },
                    tx=t,
                )
                return history
        except Exception as e:
            logger.exception(f"Verification history logging error for {verification_id}:{action}")
            return AuditFailure(error=str(e) or e.__class__.__name__)

    # ── Reads ──────────────────────────────────────────────

    def list_activity(self, owner_id: str, actor_id: str, limit: int = 50, offset: int = 0) -> dict:
        """Activity feed of one owner, newest first."""
        with self._uow.begin() as t:
            if t.owners.get_managed(owner_id, actor_id) is None:
                raise NotFoundError("Business owner not found or not managed by this user")
            total, entries = t.audit.list_activity(owner_id, limit=limit, offset=offset)
            return {"total": total, "entries": entries}

    @staticmethod
    def _resolve_owner(t: Transaction, entity_type: str, entity_id: str | None) -> str | None:
        if not entity_id:
            return None
        if entity_type == "business_owner":
            return entity_id
        if entity_type == "document":
            document = t.documents.get(entity_id)
            return document.owner_id if document else None

        verification_id = None
        if entity_type == "verification_attempt":
            verification_id = entity_id
        elif entity_type == "document_verification":
            dv = t.document_verifications.get_by_id(entity_id)
            verification_id = dv.verification_id if dv else None
        elif entity_type == "verification_certificate":
            certificate = t.certificates.get(entity_id)
            verification_id = certificate.verification_id if certificate else None

        if verification_id is None:
            return None
        attempt = t.attempts.get(verification_id)
        return attempt.business_owner_id if attempt else None
