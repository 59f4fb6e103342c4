"""Unit tests for ActivityNotifier."""

import pytest

from src.core.errors import DependencyFailure
from src.infrastructure.notifications.activity_notifier import ActivityNotifier, document_status_label
from tests.conftest import ID_DOCUMENT, MANAGER_ID, OWNER_ID


@pytest.fixture
def activity_notifier(uow, audit_log) -> ActivityNotifier:
    return ActivityNotifier(uow, audit_log)


def _set_language(uow, language: str) -> None:
    with uow.begin() as t:
        owner = t.owners.get(OWNER_ID)
        owner.preferred_language = language
        t.owners.save(owner)


class TestDecisionNotification:
    """Tests for send_verification_decision."""

    def test_english_approval(self, activity_notifier, owner, audit_log) -> None:
        result = activity_notifier.send_verification_decision(OWNER_ID, "VERIFIED")

        assert result.sent is True
        assert result.recipient == "ana@example.com"
        assert result.template_id == "verification-approved"
        entry = audit_log.list_activity(OWNER_ID, MANAGER_ID)["entries"][0]
        assert entry.entity_type == "notification"
        assert entry.performed_by == "system"
        assert entry.details["subject"] == "Verification Approved"
        assert entry.action_description == "Sent verified notification to ana@example.com"

    def test_spanish_rejection(self, activity_notifier, owner, audit_log, uow) -> None:
        _set_language(uow, "es")

        result = activity_notifier.send_verification_decision(OWNER_ID, "REJECTED", "Documento ilegible")

        assert result.template_id == "verification-rejected"
        entry = audit_log.list_activity(OWNER_ID, MANAGER_ID)["entries"][0]
        assert entry.details["subject"] == "Verificación rechazada"
        assert entry.details["message"] == "Lo sentimos Ana, su verificación ha sido rechazada."

    def test_unknown_decision(self, activity_notifier, owner) -> None:
        with pytest.raises(DependencyFailure):
            activity_notifier.send_verification_decision(OWNER_ID, "MAYBE")

    def test_missing_owner(self, activity_notifier, owner) -> None:
        with pytest.raises(DependencyFailure):
            activity_notifier.send_verification_decision("no-such-owner", "VERIFIED")


class TestDocumentNotification:
    """Tests for send_document_status."""

    def test_records_document_notification(self, activity_notifier, owner, audit_log) -> None:
        activity_notifier.send_document_status(OWNER_ID, ID_DOCUMENT, "EXPIRED")

        entry = audit_log.list_activity(OWNER_ID, MANAGER_ID)["entries"][0]
        assert entry.entity_id == ID_DOCUMENT
        assert entry.action == "DOCUMENT_VERIFICATION_NOTIFICATION"
        assert entry.details["statusLabel"] == "Expired"
        assert entry.action_description == "Sent document verification notification for identity"

    def test_missing_document(self, activity_notifier, owner) -> None:
        with pytest.raises(DependencyFailure):
            activity_notifier.send_document_status(OWNER_ID, "no-such-document", "VERIFIED")

    @pytest.mark.parametrize(
        ("status", "language", "label"),
        [
            ("SUSPECTED_FRAUD", "en", "Suspected fraud"),
            ("SUSPECTED_FRAUD", "es", "Sospecha de fraude"),
            ("SOMETHING_ELSE", "es", "Estado desconocido"),
            ("VERIFIED", "fr", "Verified"),
        ],
    )
    def test_status_labels(self, status, language, label) -> None:
        assert document_status_label(status, language) == label
