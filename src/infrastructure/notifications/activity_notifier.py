"""
Adapter: Activity Notifier

Composes the owner-facing message (English or Spanish, per the owner's
preferred language), logs it, and records it in the activity feed as a
system-performed entry. No email/SMS gateway is wired in.
"""

import logging

from src.core.clock import timestamp
from src.core.errors import DependencyFailure
from src.core.interfaces.notifier import INotifier, NotificationResult
from src.core.interfaces.unit_of_work import IUnitOfWork
from src.core.use_cases.audit_log import AuditLog

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"

DECISION_TEMPLATES = {
    "VERIFIED": {
        "template_id": "verification-approved",
        "en": ("Verification Approved", "Congratulations {name}, your verification has been approved."),
        "es": ("Verificación aprobada", "Felicidades {name}, su verificación ha sido aprobada."),
    },
    "REJECTED": {
        "template_id": "verification-rejected",
        "en": ("Verification Rejected", "We're sorry {name}, your verification has been rejected."),
        "es": ("Verificación rechazada", "Lo sentimos {name}, su verificación ha sido rechazada."),
    },
    "NEEDS_INFO": {
        "template_id": "verification-needs-info",
        "en": ("Additional Information Required", "{name}, additional information is required for your verification."),
        "es": ("Información adicional requerida", "{name}, se requiere información adicional para su verificación."),
    },
}

DOCUMENT_STATUS_LABELS = {
    "en": {
        "VERIFIED": "Verified",
        "UNREADABLE": "Unreadable",
        "EXPIRED": "Expired",
        "INCONSISTENT_DATA": "Inconsistent data",
        "SUSPECTED_FRAUD": "Suspected fraud",
        "OTHER_ISSUE": "Other issue",
        "NEEDS_REVIEW": "Needs review",
        "REJECTED": "Rejected",
    },
    "es": {
        "VERIFIED": "Verificado",
        "UNREADABLE": "Ilegible",
        "EXPIRED": "Expirado",
        "INCONSISTENT_DATA": "Datos inconsistentes",
        "SUSPECTED_FRAUD": "Sospecha de fraude",
        "OTHER_ISSUE": "Otro problema",
        "NEEDS_REVIEW": "Necesita revisión",
        "REJECTED": "Rechazado",
    },
}
UNKNOWN_STATUS = {"en": "Unknown status", "es": "Estado desconocido"}


def _language(preferred: str | None) -> str:
    return "es" if preferred == "es" else "en"


def document_status_label(status: str, language: str = "en") -> str:
    language = _language(language)
    return DOCUMENT_STATUS_LABELS[language].get(status, UNKNOWN_STATUS[language])


class ActivityNotifier(INotifier):
    """
    Notificações registradas no activity log.

    Every failure surfaces as DependencyFailure; the engine decides whether
    it matters.
    """

    def __init__(self, uow: IUnitOfWork, audit_log: AuditLog):
        self._uow = uow
        self._audit = audit_log

    def send_verification_decision(
        self, owner_id: str, decision: str, reason: str | None = None
    ) -> NotificationResult:
        template = DECISION_TEMPLATES.get(decision)
        if template is None:
            raise DependencyFailure(f"Invalid verification decision: {decision}")

        try:
            with self._uow.begin() as t:
                owner = t.owners.get(owner_id)
                if owner is None:
                    raise DependencyFailure("Business owner not found")
                subject, body = template[_language(owner.preferred_language)]
                message = body.format(name=owner.first_name)

                logger.info(f"Sending {template['template_id']} notification to {owner.email}: {subject}")
                if reason:
                    logger.info(f"Reason: {reason}")

                self._audit.write_activity(
                    t,
                    business_owner_id=owner_id,
                    entity_type="notification",
                    entity_id=None,
                    action="SEND_VERIFICATION_NOTIFICATION",
                    performed_by=SYSTEM_ACTOR,
                    details={
                        "notificationType": "email",
                        "templateId": template["template_id"],
                        "subject": subject,
                        "message": message,
                        "decision": decision,
                        "recipient": owner.email,
                        "timestamp": timestamp(),
                    },
                )
        except DependencyFailure:
            raise
        except Exception as e:
            raise DependencyFailure(f"Failed to send verification notification: {e}") from e

        return NotificationResult(sent=True, recipient=owner.email, template_id=template["template_id"])

    def send_document_status(self, owner_id: str, document_id: str, status: str) -> NotificationResult:
        try:
            with self._uow.begin() as t:
                owner = t.owners.get(owner_id)
                if owner is None:
                    raise DependencyFailure("Business owner not found")
                document = t.documents.get(document_id)
                if document is None:
                    raise DependencyFailure("Document not found")

                label = document_status_label(status, owner.preferred_language)
                logger.info(
                    f"Sending document verification notification to {owner.email}: "
                    f"{document.filename} ({document.category}) {label}"
                )

                self._audit.write_activity(
                    t,
                    business_owner_id=owner_id,
                    entity_type="document",
                    entity_id=document_id,
                    action="DOCUMENT_VERIFICATION_NOTIFICATION",
                    performed_by=SYSTEM_ACTOR,
                    details={
                        "notificationType": "email",
                        "documentId": document_id,
                        "documentName": document.filename,
                        "category": document.category,
                        "status": status,
                        "statusLabel": label,
                        "timestamp": timestamp(),
                    },
                )
        except DependencyFailure:
            raise
        except Exception as e:
            raise DependencyFailure(f"Failed to send document notification: {e}") from e

        return NotificationResult(sent=True, recipient=owner.email, template_id="document-verification-status")
