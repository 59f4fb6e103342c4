"""
Dependency wiring — builds use cases with concrete adapters.

Lazy singletons, one set per process. Tests swap the whole set through
`app.dependency_overrides[get_services]`.
"""

import logging
from dataclasses import dataclass

from fastapi import Header, HTTPException

from src.config.settings import Settings, get_settings
from src.core.interfaces.storage_service import IStorageService
from src.core.use_cases.audit_log import AuditLog
from src.core.use_cases.certificate_issuer import CertificateIssuer
from src.core.use_cases.document_tracker import DocumentVerificationTracker
from src.core.use_cases.verification_engine import VerificationAttemptEngine
from src.infrastructure.db.unit_of_work import SqlAlchemyUnitOfWork
from src.infrastructure.notifications.activity_notifier import ActivityNotifier
from src.infrastructure.rendering.pdf_renderer import PdfCertificateRenderer
from src.infrastructure.storage.local_storage import LocalStorageService

logger = logging.getLogger(__name__)


@dataclass
class Services:
    engine: VerificationAttemptEngine
    issuer: CertificateIssuer
    audit_log: AuditLog
    storage: IStorageService


def build_storage(settings: Settings) -> IStorageService:
    if settings.storage_backend == "minio":
        from src.infrastructure.storage.minio_storage import MinIOStorageService
        return MinIOStorageService(
            endpoint=settings.minio_endpoint,
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            bucket=settings.minio_bucket,
            secure=settings.minio_secure,
        )
    return LocalStorageService(
        root=settings.storage_root,
        signing_key=settings.storage_signing_key,
        base_url=settings.app_base_url,
    )


def build_services(
    settings: Settings,
    session_factory=None,
    storage: IStorageService | None = None,
    renderer=None,
    notifier=None,
) -> Services:
    """Factory: build every use case over one unit of work."""
    uow = SqlAlchemyUnitOfWork(session_factory)
    audit_log = AuditLog(uow)
    storage = storage or build_storage(settings)
    issuer = CertificateIssuer(
        uow=uow,
        renderer=renderer or PdfCertificateRenderer(
            font_path=settings.certificate_font_path or None,
            fallback_font_paths=settings.certificate_fallback_fonts,
        ),
        storage=storage,
        audit_log=audit_log,
        app_base_url=settings.app_base_url,
        validity_days=settings.certificate_validity_days,
        signed_url_ttl=settings.signed_url_ttl_seconds,
    )
    engine = VerificationAttemptEngine(
        uow=uow,
        tracker=DocumentVerificationTracker(uow),
        issuer=issuer,
        notifier=notifier or ActivityNotifier(uow, audit_log),
        audit_log=audit_log,
        verification_validity_days=settings.verification_validity_days,
        expiry_warning_days=settings.expiry_warning_days,
    )
    return Services(engine=engine, issuer=issuer, audit_log=audit_log, storage=storage)


_services: Services | None = None


def get_services() -> Services:
    global _services
    if _services is None:
        settings = get_settings()
        _services = build_services(settings)
        logger.info(f"Services ready (storage={settings.storage_backend})")
    return _services


def get_actor_id(x_user_id: str | None = Header(default=None)) -> str:
    """Authenticated caller, as forwarded by the gateway in `X-User-Id`."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id.strip()
