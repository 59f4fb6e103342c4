"""
Contract: Repositories

One port per aggregate. Implementations share a single session per
transaction (see IUnitOfWork), so the engine never touches the ORM directly
and tests can swap in doubles.
"""

from abc import ABC, abstractmethod

from src.core.entities.audit import ActivityLogEntry, VerificationHistoryEntry
from src.core.entities.business_owner import BusinessOwner
from src.core.entities.certificate import VerificationCertificate
from src.core.entities.document_verification import Document, DocumentVerification
from src.core.entities.verification_attempt import VerificationAttempt


class IOwnerRepository(ABC):
    """Port: Business Owner persistence."""

    @abstractmethod
    def get(self, owner_id: str) -> BusinessOwner | None:
        ...

    @abstractmethod
    def get_managed(self, owner_id: str, manager_id: str) -> BusinessOwner | None:
        """
        Busca um owner visível para o manager.

        Args:
            owner_id: Owner id.
            manager_id: Caller; must be the owner's assigned manager.

        Returns:
            The owner, or None when missing, soft-deleted or managed by
            someone else (indistinguishable on purpose).
        """
        ...

    @abstractmethod
    def save(self, owner: BusinessOwner) -> BusinessOwner:
        """
        Persist owner changes with an optimistic version check.

        Returns:
            The owner carrying its new version.

        Raises:
            ConcurrencyConflict: the stored version moved since `owner` was read.
        """
        ...


class IAttemptRepository(ABC):
    """Port: Verification Attempt persistence."""

    @abstractmethod
    def get(self, attempt_id: str) -> VerificationAttempt | None:
        ...

    @abstractmethod
    def find_open(self, owner_id: str) -> VerificationAttempt | None:
        ...

    @abstractmethod
    def add(self, attempt: VerificationAttempt) -> VerificationAttempt:
        """
        Insert a new open attempt.

        Raises:
            ConcurrencyConflict: another open attempt exists for the owner.
        """
        ...

    @abstractmethod
    def save(self, attempt: VerificationAttempt) -> VerificationAttempt:
        ...

    @abstractmethod
    def list_completed(self, owner_id: str, limit: int = 5) -> list[VerificationAttempt]:
        """Completed attempts, newest first."""
        ...

    @abstractmethod
    def latest_verified(self, owner_id: str) -> VerificationAttempt | None:
        ...


class IDocumentRepository(ABC):
    """Port: uploaded documents (read side only)."""

    @abstractmethod
    def get(self, document_id: str) -> Document | None:
        ...

    @abstractmethod
    def list_for_owner(self, owner_id: str) -> list[Document]:
        """Live (not soft-deleted) documents, newest upload first."""
        ...


class IDocumentVerificationRepository(ABC):
    """Port: per-document decisions."""

    @abstractmethod
    def get(self, verification_id: str, document_id: str) -> DocumentVerification | None:
        ...

    @abstractmethod
    def get_by_id(self, document_verification_id: str) -> DocumentVerification | None:
        ...

    @abstractmethod
    def upsert(self, verification: DocumentVerification) -> DocumentVerification:
        """Create or overwrite the row keyed by (verification_id, document_id)."""
        ...

    @abstractmethod
    def list_for_attempt(self, verification_id: str) -> list[DocumentVerification]:
        """All decisions of an attempt, most recently verified first."""
        ...


class ICertificateRepository(ABC):
    """Port: issued certificates."""

    @abstractmethod
    def get(self, certificate_id: str) -> VerificationCertificate | None:
        ...

    @abstractmethod
    def get_by_verification(self, verification_id: str) -> VerificationCertificate | None:
        ...

    @abstractmethod
    def get_by_hash(self, verification_hash: str) -> VerificationCertificate | None:
        ...

    @abstractmethod
    def add(self, certificate: VerificationCertificate) -> VerificationCertificate:
        """
        Insert a certificate.

        Raises:
            ConcurrencyConflict: certificate number or verification id taken.
        """
        ...

    @abstractmethod
    def save(self, certificate: VerificationCertificate) -> VerificationCertificate:
        ...


class IAuditRepository(ABC):
    """Port: append-only audit tables."""

    @abstractmethod
    def add_activity(self, entry: ActivityLogEntry) -> ActivityLogEntry:
        ...

    @abstractmethod
    def add_history(self, entry: VerificationHistoryEntry) -> VerificationHistoryEntry:
        ...

    @abstractmethod
    def list_activity(self, owner_id: str, limit: int = 50, offset: int = 0) -> tuple[int, list[ActivityLogEntry]]:
        """Returns (total, page) with newest entries first."""
        ...

    @abstractmethod
    def list_history(self, verification_id: str, limit: int = 20) -> list[VerificationHistoryEntry]:
        ...
