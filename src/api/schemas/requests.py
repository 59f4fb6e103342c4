"""
Pydantic schemas — Request models para a API.

Values stay loosely typed here (plain strings); the use cases own the
validation and raise ValidationError with a domain message.
"""

from pydantic import BaseModel, Field


class DraftRequest(BaseModel):
    draft_data: dict


class DocumentVerificationRequest(BaseModel):
    status: str
    notes: str | None = None


class DocumentDecisionRequest(BaseModel):
    document_id: str
    status: str
    notes: str | None = None


class DecisionRequest(BaseModel):
    decision: str
    decision_reason: str | None = None
    sections: dict
    document_verifications: list[DocumentDecisionRequest] = Field(default_factory=list)


class RevokeRequest(BaseModel):
    reason: str
