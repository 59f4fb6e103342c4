"""
Contract: Notifier

Tells the owner about verification outcomes. Best-effort from the engine's
point of view: a failure is logged by the caller, never rolled back.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from src.core.clock import utcnow


@dataclass
class NotificationResult:
    sent: bool
    recipient: str
    template_id: str = ""
    timestamp: datetime = field(default_factory=utcnow)


class INotifier(ABC):
    """Port: Notifier"""

    @abstractmethod
    def send_verification_decision(
        self, owner_id: str, decision: str, reason: str | None = None
    ) -> NotificationResult:
        """
        Notify the owner of a final decision.

        Raises:
            DependencyFailure: the message could not be delivered.
        """
        ...

    @abstractmethod
    def send_document_status(self, owner_id: str, document_id: str, status: str) -> NotificationResult:
        """
        Notify the owner that one of their documents was reviewed.

        Raises:
            DependencyFailure: the message could not be delivered.
        """
        ...
