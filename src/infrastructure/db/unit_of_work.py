"""
SQLAlchemy Unit of Work.

Every repository of a transaction shares one Session; commit/rollback follow
the same rules as `get_db()`.
"""

from contextlib import contextmanager

from sqlalchemy.orm import Session

from src.core.interfaces.unit_of_work import IUnitOfWork, Transaction
from src.infrastructure.db.database import get_db
from src.infrastructure.db.repository import (
    AttemptRepository,
    AuditRepository,
    CertificateRepository,
    DocumentRepository,
    DocumentVerificationRepository,
    OwnerRepository,
)


class SqlAlchemyTransaction(Transaction):

    def __init__(self, session: Session):
        self.session = session
        self.owners = OwnerRepository(session)
        self.attempts = AttemptRepository(session)
        self.documents = DocumentRepository(session)
        self.document_verifications = DocumentVerificationRepository(session)
        self.certificates = CertificateRepository(session)
        self.audit = AuditRepository(session)

    @contextmanager
    def savepoint(self):
        with self.session.begin_nested():
            yield


class SqlAlchemyUnitOfWork(IUnitOfWork):
    """
    Adapter: Unit of Work over a sessionmaker.

    Sem factory explícita, usa a factory global de `database.py`.
    """

    def __init__(self, session_factory=None):
        self._factory = session_factory

    @contextmanager
    def begin(self, existing: Transaction | None = None):
        if existing is not None:
            yield existing
            return
        with get_db(self._factory) as session:
            yield SqlAlchemyTransaction(session)
