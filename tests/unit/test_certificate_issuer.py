"""Unit tests for CertificateIssuer."""

import hashlib
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from src.core.errors import DependencyFailure, InvalidStateError, NotFoundError, ValidationError
from src.core.use_cases.certificate_issuer import (
    CertificateIssuer,
    canonical_payload,
    compute_hash,
    format_verified_at,
)
from tests.conftest import ALL_VERIFIED_SECTIONS, BASE_URL, MANAGER_ID, OTHER_MANAGER_ID, OWNER_ID


def _verify(engine):
    attempt = engine.create_attempt(OWNER_ID, MANAGER_ID)
    result = engine.submit_decision(OWNER_ID, MANAGER_ID, attempt.id, "VERIFIED", None, ALL_VERIFIED_SECTIONS)
    return attempt, result


class TestHash:
    """Tests for the canonical payload and its hash."""

    def test_canonical_payload_layout(self) -> None:
        verified_at = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)

        payload = canonical_payload("v-1", "o-1", "m-1", verified_at, "Ana Souza")

        assert payload == (
            '{"verificationId":"v-1","businessOwnerId":"o-1","verifiedBy":"m-1",'
            '"verifiedAt":"2024-05-01T12:30:00.000Z","ownerName":"Ana Souza"}'
        )

    def test_hash_is_sha256_of_payload(self) -> None:
        verified_at = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
        payload = canonical_payload("v-1", "o-1", "m-1", verified_at, "Ana Souza")

        assert compute_hash("v-1", "o-1", "m-1", verified_at, "Ana Souza") == hashlib.sha256(
            payload.encode("utf-8")
        ).hexdigest()

    def test_hash_is_deterministic(self) -> None:
        verified_at = datetime(2024, 5, 1, 12, 30, 15, 123456, tzinfo=timezone.utc)

        first = compute_hash("v-1", "o-1", "m-1", verified_at, "Ana Souza")
        second = compute_hash("v-1", "o-1", "m-1", verified_at, "Ana Souza")

        assert first == second
        assert len(first) == 64

    def test_hash_changes_with_any_field(self) -> None:
        verified_at = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
        base = compute_hash("v-1", "o-1", "m-1", verified_at, "Ana Souza")

        assert compute_hash("v-2", "o-1", "m-1", verified_at, "Ana Souza") != base
        assert compute_hash("v-1", "o-1", "m-1", verified_at, "Ana Sousa") != base

    def test_verified_at_truncated_to_milliseconds(self) -> None:
        value = datetime(2024, 5, 1, 12, 30, 15, 123999, tzinfo=timezone.utc)

        assert format_verified_at(value) == "2024-05-01T12:30:15.123Z"


class TestGenerate:
    """Tests for certificate issuance."""

    def test_verified_decision_issues_certificate(self, engine, issuer, uow, storage) -> None:
        attempt, result = _verify(engine)

        with uow.begin() as t:
            certificate = t.certificates.get(result.certificate_id)
            stored = t.attempts.get(attempt.id)

        assert certificate.certificate_number.startswith(f"PR-BO-{stored.completed_at.year}-")
        assert len(certificate.certificate_number.rsplit("-", 1)[1]) == 6
        assert certificate.verification_hash == compute_hash(
            attempt.id, OWNER_ID, MANAGER_ID, stored.completed_at, "Ana Souza"
        )
        assert certificate.validation_url == f"{BASE_URL}/verify/{certificate.verification_hash}"
        assert certificate.document_path == f"certificates/{OWNER_ID}/{attempt.id}.pdf"
        assert (certificate.expires_at - certificate.issued_at).days == 365
        storage.upload.assert_called_once()

    def test_generate_is_idempotent(self, engine, issuer, renderer) -> None:
        attempt, result = _verify(engine)

        again = issuer.generate(attempt.id, MANAGER_ID)

        assert again.id == result.certificate_id
        assert renderer.render.call_count == 1

    def test_non_verified_attempt_is_rejected(self, engine, issuer) -> None:
        attempt = engine.create_attempt(OWNER_ID, MANAGER_ID)

        with pytest.raises(InvalidStateError):
            issuer.generate(attempt.id, MANAGER_ID)

        engine.submit_decision(OWNER_ID, MANAGER_ID, attempt.id, "REJECTED", "Forged", {})
        with pytest.raises(InvalidStateError):
            issuer.generate(attempt.id, MANAGER_ID)

    def test_missing_attempt_is_not_found(self, issuer, owner) -> None:
        with pytest.raises(NotFoundError):
            issuer.generate("no-such-attempt", MANAGER_ID)

    def test_storage_failure_is_dependency_failure(self, engine, issuer, storage, uow) -> None:
        storage.upload.side_effect = OSError("disk full")
        attempt, result = _verify(engine)
        assert result.certificate_id is None

        with pytest.raises(DependencyFailure):
            issuer.generate(attempt.id, MANAGER_ID)
        with uow.begin() as t:
            assert t.certificates.get_by_verification(attempt.id) is None

    def test_certificate_number_collision_draws_again(self, engine, uow, renderer, storage, audit_log) -> None:
        rng = MagicMock()
        rng.randint.side_effect = [111111, 111111, 222222]
        collider = CertificateIssuer(uow, renderer, storage, audit_log, BASE_URL, rng=rng)
        renderer.render.side_effect = RuntimeError("renderer offline")
        first, _ = _verify(engine)
        second, _ = _verify(engine)
        renderer.render.side_effect = None

        a = collider.generate(first.id, MANAGER_ID)
        b = collider.generate(second.id, MANAGER_ID)

        assert a.certificate_number.endswith("-111111")
        assert b.certificate_number.endswith("-222222")

    def test_get_or_generate_issues_on_demand(self, engine, issuer, renderer, uow) -> None:
        renderer.render.side_effect = [RuntimeError("first render fails"), b"%PDF-1.4 retry"]
        attempt, result = _verify(engine)
        assert result.certificate_id is None

        detail = issuer.get_or_generate(OWNER_ID, MANAGER_ID)

        assert detail["verification_id"] == attempt.id
        assert detail["certificate_url"] == "https://files.example.com/signed"
        assert detail["owner_name"] == "Ana Souza"
        assert detail["qr_code_data"]["certificateNumber"] == detail["certificate_number"]

    def test_get_or_generate_without_verified_attempt(self, issuer, owner) -> None:
        with pytest.raises(NotFoundError):
            issuer.get_or_generate(OWNER_ID, MANAGER_ID)

    def test_get_or_generate_checks_manager(self, engine, issuer) -> None:
        _verify(engine)

        with pytest.raises(NotFoundError):
            issuer.get_or_generate(OWNER_ID, OTHER_MANAGER_ID)

    def test_signing_failure_returns_detail_without_url(self, engine, issuer, storage) -> None:
        storage.get_signed_url.side_effect = RuntimeError("no credentials")
        _, result = _verify(engine)

        detail = issuer.get_certificate(result.certificate_id, MANAGER_ID)

        assert detail["certificate_url"] is None
        assert detail["id"] == result.certificate_id

    def test_get_certificate_checks_manager(self, engine, issuer) -> None:
        _, result = _verify(engine)

        with pytest.raises(NotFoundError):
            issuer.get_certificate(result.certificate_id, OTHER_MANAGER_ID)


class TestVerifyAndRevoke:
    """Tests for public validation and revocation."""

    def test_valid_certificate(self, engine, issuer, uow) -> None:
        _, result = _verify(engine)
        with uow.begin() as t:
            certificate = t.certificates.get(result.certificate_id)

        validation = issuer.verify_by_hash(certificate.verification_hash)

        assert validation.valid is True
        assert validation.reason is None
        assert validation.certificate["certificate_number"] == certificate.certificate_number
        assert validation.certificate["owner_name"] == "Ana Souza"
        assert "owner_email" not in validation.certificate

    def test_hash_lookup_ignores_case(self, engine, issuer, uow) -> None:
        _, result = _verify(engine)
        with uow.begin() as t:
            certificate = t.certificates.get(result.certificate_id)

        assert issuer.verify_by_hash(certificate.verification_hash.upper()).valid is True

    @pytest.mark.parametrize("value", ["", "not-a-hash", "0" * 64])
    def test_unknown_hash(self, issuer, owner, value) -> None:
        validation = issuer.verify_by_hash(value)

        assert validation.valid is False
        assert validation.reason == "Certificate not found"
        assert validation.certificate is None

    def test_expired_certificate(self, engine, uow, renderer, storage, audit_log) -> None:
        short_lived = CertificateIssuer(uow, renderer, storage, audit_log, BASE_URL, validity_days=-1)
        renderer.render.side_effect = RuntimeError("renderer offline")
        attempt, _ = _verify(engine)
        renderer.render.side_effect = None
        certificate = short_lived.generate(attempt.id, MANAGER_ID)

        validation = short_lived.verify_by_hash(certificate.verification_hash)

        assert validation.valid is False
        assert validation.reason == "Certificate has expired"

        short_lived.revoke(certificate.id, MANAGER_ID, "Superseded")
        assert short_lived.verify_by_hash(certificate.verification_hash).reason == "Certificate has been revoked"

    def test_revoked_certificate_fails_validation(self, engine, issuer, uow) -> None:
        _, result = _verify(engine)

        revoked = issuer.revoke(result.certificate_id, MANAGER_ID, "Issued in error")
        validation = issuer.verify_by_hash(revoked.verification_hash)

        assert revoked.is_revoked is True
        assert revoked.revoked_by == MANAGER_ID
        assert validation.valid is False
        assert validation.reason == "Certificate has been revoked"
        assert validation.revoked_reason == "Issued in error"
        with uow.begin() as t:
            _, activity = t.audit.list_activity(OWNER_ID)
        assert any(e.action == "REVOKE" for e in activity)

    def test_revocation_is_one_way(self, engine, issuer) -> None:
        _, result = _verify(engine)
        issuer.revoke(result.certificate_id, MANAGER_ID, "Issued in error")

        with pytest.raises(InvalidStateError, match="already revoked"):
            issuer.revoke(result.certificate_id, MANAGER_ID, "Again")

    def test_revoke_requires_reason(self, engine, issuer) -> None:
        _, result = _verify(engine)

        with pytest.raises(ValidationError):
            issuer.revoke(result.certificate_id, MANAGER_ID, "   ")

    def test_revoke_missing_certificate(self, issuer, owner) -> None:
        with pytest.raises(NotFoundError):
            issuer.revoke("no-such-certificate", MANAGER_ID, "reason")

    def test_revoke_checks_manager(self, engine, issuer, uow) -> None:
        _, result = _verify(engine)

        with pytest.raises(NotFoundError):
            issuer.revoke(result.certificate_id, OTHER_MANAGER_ID, "Not mine")

        with uow.begin() as t:
            assert t.certificates.get(result.certificate_id).is_revoked is False
