"""
Contract: Certificate Renderer

Turns the certificate payload into printable bytes. The core treats the
output as opaque.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass
class CertificatePayload:
    """Dados impressos no certificado."""
    verification_id: str
    business_owner_id: str
    owner_name: str
    certificate_number: str
    verified_at: datetime
    verified_by: str
    expires_at: datetime
    verification_hash: str
    validation_url: str


class ICertificateRenderer(ABC):
    """Port: Certificate Renderer"""

    content_type: str = "application/pdf"

    @abstractmethod
    def render(self, payload: CertificatePayload) -> bytes:
        """
        Renderiza o certificado.

        Args:
            payload: Certificate data.

        Returns:
            Document bytes (PDF by default).
        """
        ...
