"""
Routes: verification attempts of a business owner.

All routes require `X-User-Id`; owners outside the caller's portfolio answer
404 exactly like missing ones.
"""

from fastapi import APIRouter, Depends

from src.api.dependencies import Services, get_actor_id, get_services
from src.api.schemas.requests import DecisionRequest, DocumentVerificationRequest, DraftRequest
from src.api.schemas.responses import (
    ActivityEntryResponse,
    ActivityResponse,
    AttemptResponse,
    DecisionResponse,
    DocumentRowResponse,
    DocumentsResponse,
    DocumentVerificationResponse,
    DraftSaveResponse,
    HistoryEntryResponse,
    MetricsResponse,
    OwnerResponse,
    StatusResponse,
)
from src.core.use_cases.document_tracker import DocumentDecision

router = APIRouter(prefix="/owners/{owner_id}")


@router.get("/verification", response_model=StatusResponse)
async def get_verification_status(
    owner_id: str,
    include_documents: bool = False,
    include_history: bool = False,
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
):
    status = services.engine.get_verification_status(
        owner_id, actor_id, include_documents=include_documents, include_history=include_history
    )
    current = status["current_attempt"]
    history = status["history"]
    return StatusResponse(
        owner_id=status["owner_id"],
        owner_name=status["owner_name"],
        verification_status=status["verification_status"].value,
        metrics=MetricsResponse(**status["metrics"]),
        current_attempt=AttemptResponse.from_entity(current) if current else None,
        recent_attempts=[AttemptResponse.from_entity(a) for a in status["recent_attempts"]],
        document_breakdown=status["document_breakdown"],
        history=(
            [HistoryEntryResponse.model_validate(h, from_attributes=True) for h in history]
            if history is not None else None
        ),
    )


@router.post("/verification", response_model=AttemptResponse)
async def start_verification(
    owner_id: str,
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
):
    """Start an attempt, or return the one already open."""
    return AttemptResponse.from_entity(services.engine.create_attempt(owner_id, actor_id))


@router.put("/verification/draft", response_model=DraftSaveResponse)
async def save_draft(
    owner_id: str,
    body: DraftRequest,
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
):
    result = services.engine.save_draft(owner_id, actor_id, body.draft_data)
    return DraftSaveResponse(attempt_id=result.attempt_id, saved_at=result.saved_at)


@router.put(
    "/verification/{verification_id}/documents/{document_id}",
    response_model=DocumentVerificationResponse,
)
async def update_document_verification(
    owner_id: str,
    verification_id: str,
    document_id: str,
    body: DocumentVerificationRequest,
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
):
    tracked = services.engine.update_document_verification(
        owner_id, actor_id, verification_id, document_id, body.status, body.notes
    )
    return DocumentVerificationResponse.from_tracked(tracked)


@router.get("/verification/{verification_id}/documents", response_model=DocumentsResponse)
async def get_verification_documents(
    owner_id: str,
    verification_id: str,
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
):
    result = services.engine.get_verification_documents(owner_id, verification_id, actor_id)
    return DocumentsResponse(
        verification_id=result["verification_id"],
        documents=[DocumentRowResponse.from_row(r) for r in result["documents"]],
        documents_by_category={
            category: [DocumentRowResponse.from_row(r) for r in rows]
            for category, rows in result["documents_by_category"].items()
        },
        total_documents=result["total_documents"],
        verified_documents=result["verified_documents"],
    )


@router.post("/verification/{verification_id}/decision", response_model=DecisionResponse)
async def submit_decision(
    owner_id: str,
    verification_id: str,
    body: DecisionRequest,
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
):
    result = services.engine.submit_decision(
        owner_id,
        actor_id,
        verification_id,
        decision=body.decision,
        decision_reason=body.decision_reason,
        sections=body.sections,
        document_verifications=[
            DocumentDecision(d.document_id, d.status, d.notes) for d in body.document_verifications
        ],
    )
    return DecisionResponse(
        verification_id=result.verification_id,
        decision=result.decision.value,
        completed_at=result.completed_at,
        certificate_id=result.certificate_id,
        owner=OwnerResponse.from_entity(result.owner),
    )


@router.get("/activity", response_model=ActivityResponse)
async def get_activity(
    owner_id: str,
    limit: int = 50,
    offset: int = 0,
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
):
    result = services.audit_log.list_activity(owner_id, actor_id, limit=limit, offset=offset)
    return ActivityResponse(
        total=result["total"],
        entries=[ActivityEntryResponse.model_validate(e, from_attributes=True) for e in result["entries"]],
    )
