"""
Pydantic schemas — Response models para a API.
"""

from datetime import datetime

from pydantic import BaseModel


class OwnerResponse(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: str = ""
    verification_status: str
    tax_id: str | None = None
    id_license_number: str | None = None
    last_verified_at: datetime | None = None
    verification_expires_at: datetime | None = None

    @classmethod
    def from_entity(cls, owner) -> "OwnerResponse":
        return cls(
            id=owner.id,
            first_name=owner.first_name,
            last_name=owner.last_name,
            email=owner.email,
            verification_status=owner.verification_status.value,
            tax_id=owner.tax_id,
            id_license_number=owner.id_license_number,
            last_verified_at=owner.last_verified_at,
            verification_expires_at=owner.verification_expires_at,
        )


class AttemptResponse(BaseModel):
    id: str
    business_owner_id: str
    initiated_by: str
    sections: dict
    draft_data: dict
    created_at: datetime
    last_updated: datetime
    completed_at: datetime | None = None
    decision: str | None = None
    decision_reason: str | None = None

    @classmethod
    def from_entity(cls, attempt) -> "AttemptResponse":
        return cls(
            id=attempt.id,
            business_owner_id=attempt.business_owner_id,
            initiated_by=attempt.initiated_by,
            sections=attempt.sections.to_dict(),
            draft_data=attempt.draft_data,
            created_at=attempt.created_at,
            last_updated=attempt.last_updated,
            completed_at=attempt.completed_at,
            decision=attempt.decision.value if attempt.decision else None,
            decision_reason=attempt.decision_reason,
        )


class DraftSaveResponse(BaseModel):
    success: bool = True
    attempt_id: str
    saved_at: datetime


class DocumentVerificationResponse(BaseModel):
    id: str
    verification_id: str
    document_id: str
    status: str
    notes: str | None = None
    verified_by: str
    verified_at: datetime
    requires_note: bool = False

    @classmethod
    def from_tracked(cls, tracked) -> "DocumentVerificationResponse":
        dv = tracked.verification
        return cls(
            id=dv.id,
            verification_id=dv.verification_id,
            document_id=dv.document_id,
            status=dv.status.value,
            notes=dv.notes,
            verified_by=dv.verified_by,
            verified_at=dv.verified_at,
            requires_note=tracked.requires_note,
        )


class DecisionResponse(BaseModel):
    success: bool = True
    verification_id: str
    decision: str
    completed_at: datetime
    certificate_id: str | None = None
    owner: OwnerResponse


class HistoryEntryResponse(BaseModel):
    id: str
    action: str
    performed_by: str
    performed_at: datetime
    step_number: int | None = None
    details: dict = {}


class MetricsResponse(BaseModel):
    total_attempts: int
    last_verified_at: datetime | None = None
    verification_expires_at: datetime | None = None
    days_until_expiry: int | None = None
    is_expiring: bool = False
    certificate_id: str | None = None


class StatusResponse(BaseModel):
    owner_id: str
    owner_name: str
    verification_status: str
    metrics: MetricsResponse
    current_attempt: AttemptResponse | None = None
    recent_attempts: list[AttemptResponse] = []
    document_breakdown: dict | None = None
    history: list[HistoryEntryResponse] | None = None


class DocumentRowResponse(BaseModel):
    document_id: str
    filename: str
    category: str
    content_type: str = ""
    uploaded_at: datetime
    verification_status: str | None = None
    verification_notes: str | None = None
    verified_at: datetime | None = None
    verified_by: str | None = None

    @classmethod
    def from_row(cls, row: dict) -> "DocumentRowResponse":
        document = row["document"]
        return cls(
            document_id=document.id,
            filename=document.filename,
            category=document.category,
            content_type=document.content_type,
            uploaded_at=document.uploaded_at,
            verification_status=row["verification_status"],
            verification_notes=row["verification_notes"],
            verified_at=row["verified_at"],
            verified_by=row["verified_by"],
        )


class DocumentsResponse(BaseModel):
    verification_id: str
    documents: list[DocumentRowResponse]
    documents_by_category: dict[str, list[DocumentRowResponse]]
    total_documents: int
    verified_documents: int


class ActivityEntryResponse(BaseModel):
    id: str
    entity_type: str
    entity_id: str | None = None
    action: str
    action_description: str
    performed_by: str
    performed_by_name: str | None = None
    performed_by_role: str | None = None
    performed_at: datetime
    details: dict = {}


class ActivityResponse(BaseModel):
    total: int
    entries: list[ActivityEntryResponse]


class CertificateResponse(BaseModel):
    id: str
    certificate_number: str
    verification_id: str
    issued_at: datetime
    expires_at: datetime
    verification_hash: str
    validation_url: str
    qr_code_data: dict | None = None
    owner_name: str | None = None
    owner_email: str | None = None
    is_revoked: bool
    revoked_at: datetime | None = None
    revoked_reason: str | None = None
    certificate_url: str | None = None


class RevokeResponse(BaseModel):
    success: bool = True
    id: str
    certificate_number: str
    is_revoked: bool
    revoked_at: datetime | None = None
    revoked_reason: str | None = None
    revoked_by: str | None = None


class ValidationResponse(BaseModel):
    valid: bool
    reason: str | None = None
    certificate: dict | None = None
    revoked_at: datetime | None = None
    revoked_reason: str | None = None
