"""
Contract: Unit of Work

Groups repository calls into one atomic transaction against the durable
store. Either every write inside `begin()` lands, or none does.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager

from src.core.interfaces.repositories import (
    IAttemptRepository,
    IAuditRepository,
    ICertificateRepository,
    IDocumentRepository,
    IDocumentVerificationRepository,
    IOwnerRepository,
)


class Transaction(ABC):
    """Repositories bound to one open transaction."""

    owners: IOwnerRepository
    attempts: IAttemptRepository
    documents: IDocumentRepository
    document_verifications: IDocumentVerificationRepository
    certificates: ICertificateRepository
    audit: IAuditRepository

    @abstractmethod
    def savepoint(self) -> AbstractContextManager[None]:
        """
        Nested transaction.

        An exception inside the block rolls back only the block's writes and
        re-raises; the outer transaction stays usable.
        """
        ...


class IUnitOfWork(ABC):
    """Port: transaction boundary."""

    @abstractmethod
    def begin(self, existing: Transaction | None = None) -> AbstractContextManager[Transaction]:
        """
        Open a transaction, or join one.

        Args:
            existing: When given, the block runs inside it and neither commits
                nor rolls back; the owner of `existing` decides.

        Returns:
            Context manager yielding the Transaction. Commits on normal exit,
            rolls back and re-raises on error.
        """
        ...
