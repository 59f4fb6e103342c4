"""
Shared fixtures.

Every test gets a fresh in-memory SQLite database (StaticPool, one shared
connection) seeded with one manager, one owner and two documents.
Renderer, storage and notifier are MagicMocks unless a test swaps them.
"""

import random
from unittest.mock import MagicMock

import pytest
from sqlalchemy.orm import sessionmaker

from src.core.entities.business_owner import BusinessOwner
from src.core.entities.document_verification import Document
from src.core.interfaces.certificate_renderer import ICertificateRenderer
from src.core.interfaces.notifier import INotifier, NotificationResult
from src.core.interfaces.storage_service import IStorageService, StorageRef
from src.core.use_cases.audit_log import AuditLog
from src.core.use_cases.certificate_issuer import CertificateIssuer
from src.core.use_cases.document_tracker import DocumentVerificationTracker
from src.core.use_cases.verification_engine import VerificationAttemptEngine
from src.infrastructure.db.database import create_db_engine, init_db
from src.infrastructure.db.unit_of_work import SqlAlchemyUnitOfWork

MANAGER_ID = "manager-1"
OTHER_MANAGER_ID = "manager-2"
OWNER_ID = "owner-1"
ID_DOCUMENT = "doc-identity"
ADDRESS_DOCUMENT = "doc-address"
OTHER_OWNER_ID = "owner-2"
FOREIGN_DOCUMENT = "doc-foreign"
BASE_URL = "https://verify.example.com"


@pytest.fixture
def db_engine():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest.fixture
def uow(session_factory):
    return SqlAlchemyUnitOfWork(session_factory)


@pytest.fixture
def owner(uow) -> BusinessOwner:
    with uow.begin() as t:
        created = t.owners.add(
            BusinessOwner(
                id=OWNER_ID,
                first_name="Ana",
                last_name="Souza",
                assigned_manager_id=MANAGER_ID,
                email="ana@example.com",
                tax_id="123456789",
                id_license_number="D1234567",
            )
        )
        t.documents.add(Document(id=ID_DOCUMENT, owner_id=OWNER_ID, filename="passport.pdf", category="identity"))
        t.documents.add(Document(id=ADDRESS_DOCUMENT, owner_id=OWNER_ID, filename="utility.pdf", category="address"))
    return created


@pytest.fixture
def other_owner(uow) -> BusinessOwner:
    """Owner managed by someone else, with one document of their own."""
    with uow.begin() as t:
        created = t.owners.add(
            BusinessOwner(
                id=OTHER_OWNER_ID,
                first_name="Bruno",
                last_name="Lima",
                assigned_manager_id=OTHER_MANAGER_ID,
                email="bruno@example.com",
            )
        )
        t.documents.add(
            Document(id=FOREIGN_DOCUMENT, owner_id=OTHER_OWNER_ID, filename="license.pdf", category="identity")
        )
    return created


@pytest.fixture
def audit_log(uow) -> AuditLog:
    return AuditLog(uow)


@pytest.fixture
def tracker(uow) -> DocumentVerificationTracker:
    return DocumentVerificationTracker(uow)


@pytest.fixture
def renderer():
    mock = MagicMock(spec=ICertificateRenderer)
    mock.content_type = "application/pdf"
    mock.render.return_value = b"%PDF-1.4 test"
    return mock


@pytest.fixture
def storage():
    mock = MagicMock(spec=IStorageService)
    mock.upload.side_effect = lambda data, key, content_type="application/pdf": StorageRef(
        bucket="test", key=key, size_bytes=len(data), sha256="0" * 64, content_type=content_type
    )
    mock.get_signed_url.return_value = "https://files.example.com/signed"
    return mock


@pytest.fixture
def notifier():
    mock = MagicMock(spec=INotifier)
    mock.send_verification_decision.return_value = NotificationResult(sent=True, recipient="ana@example.com")
    mock.send_document_status.return_value = NotificationResult(sent=True, recipient="ana@example.com")
    return mock


@pytest.fixture
def issuer(uow, renderer, storage, audit_log) -> CertificateIssuer:
    return CertificateIssuer(
        uow=uow,
        renderer=renderer,
        storage=storage,
        audit_log=audit_log,
        app_base_url=BASE_URL,
        rng=random.Random(42),
    )


@pytest.fixture
def make_engine(tracker, issuer, notifier, audit_log):
    """Engine factory, for tests that need a different unit of work."""
    def _make(unit_of_work) -> VerificationAttemptEngine:
        return VerificationAttemptEngine(
            uow=unit_of_work,
            tracker=DocumentVerificationTracker(unit_of_work),
            issuer=issuer,
            notifier=notifier,
            audit_log=audit_log,
        )
    return _make


@pytest.fixture
def engine(uow, make_engine, owner) -> VerificationAttemptEngine:
    return make_engine(uow)


ALL_VERIFIED_SECTIONS = {
    "identity": {"status": "VERIFIED"},
    "address": {"status": "VERIFIED"},
    "businessAffiliation": {"status": "VERIFIED"},
}
