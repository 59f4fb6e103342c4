"""
Routes: certificates.

`/verify/{hash}` is public (no caller identity); everything else requires
`X-User-Id`.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response

from src.api.dependencies import Services, get_actor_id, get_services
from src.api.schemas.requests import RevokeRequest
from src.api.schemas.responses import CertificateResponse, RevokeResponse, ValidationResponse
from src.infrastructure.storage.local_storage import LocalStorageService

logger = logging.getLogger(__name__)

router = APIRouter()
public_router = APIRouter()


@router.post("/owners/{owner_id}/certificate", response_model=CertificateResponse)
async def get_or_generate_certificate(
    owner_id: str,
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
):
    """Certificate of the latest VERIFIED attempt, issued on first request."""
    return CertificateResponse(**services.issuer.get_or_generate(owner_id, actor_id))


@router.get("/certificates/{certificate_id}", response_model=CertificateResponse)
async def get_certificate(
    certificate_id: str,
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
):
    return CertificateResponse(**services.issuer.get_certificate(certificate_id, actor_id))


@router.post("/certificates/{certificate_id}/revoke", response_model=RevokeResponse)
async def revoke_certificate(
    certificate_id: str,
    body: RevokeRequest,
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
):
    certificate = services.issuer.revoke(certificate_id, actor_id, body.reason)
    return RevokeResponse(
        id=certificate.id,
        certificate_number=certificate.certificate_number,
        is_revoked=certificate.is_revoked,
        revoked_at=certificate.revoked_at,
        revoked_reason=certificate.revoked_reason,
        revoked_by=certificate.revoked_by,
    )


@router.get("/files/{key:path}")
async def download_file(
    key: str,
    expires: int,
    signature: str,
    services: Services = Depends(get_services),
):
    """Serve a locally stored file behind a signed URL."""
    storage = services.storage
    if not isinstance(storage, LocalStorageService):
        raise HTTPException(status_code=404, detail="Not found")
    if not storage.verify_signature(key, expires, signature):
        raise HTTPException(status_code=403, detail="Invalid or expired signature")
    return Response(content=storage.download(key), media_type="application/pdf")


@public_router.get("/verify/{verification_hash}", response_model=ValidationResponse)
async def verify_certificate(verification_hash: str, services: Services = Depends(get_services)):
    """Public certificate validation by hash."""
    result = services.issuer.verify_by_hash(verification_hash)
    if not result.valid:
        logger.info(f"Validation failed for hash {verification_hash[:12]}...: {result.reason}")
    return ValidationResponse(**result.to_dict())
