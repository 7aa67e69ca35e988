"""Request / response models for the casedesk API."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


# ── Identity / policy ────────────────────────────────────────────────────────

class MeResponse(BaseModel):
    user_id: str
    org_id: str
    role: str
    privileges: dict[str, dict[str, bool]]


class PolicyCheckRequest(BaseModel):
    resource: str
    action: str


class PolicyCheckResponse(BaseModel):
    role: str
    resource: str
    action: str
    allowed: bool


class WorkflowResponse(BaseModel):
    statuses: list[str]
    initial: str
    terminal: list[str]
    transitions: dict[str, list[str]]


class NextStatusesResponse(BaseModel):
    role: str
    from_status: str
    next_statuses: list[str]


# ── Cases ────────────────────────────────────────────────────────────────────

class CaseCreate(BaseModel):
    company_id: str = Field(..., min_length=1)
    priority: Literal["LOW", "MEDIUM", "HIGH"] = "MEDIUM"


class CaseStatusUpdate(BaseModel):
    to: str = Field(..., min_length=1)


class CaseAssign(BaseModel):
    assigned_to: str = Field(..., min_length=1)


class CaseNoteCreate(BaseModel):
    type: str = "NOTE"
    content: str = Field(..., min_length=1, max_length=1000)


class CaseNoteResponse(BaseModel):
    id: str
    type: str
    content: str


class CaseSchema(BaseModel):
    id: str
    org_id: str
    company_id: str
    status: str
    priority: str
    assigned_to: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CaseDetail(CaseSchema):
    next_statuses: list[str] = []


class CaseEventSchema(BaseModel):
    id: str
    case_id: str
    type: str
    actor: str
    payload: dict
    created_at: datetime

    model_config = {"from_attributes": True}


# ── Documents ────────────────────────────────────────────────────────────────

class DocumentUpload(BaseModel):
    kind: Literal["ID", "IBAN", "BILANCIO", "DURC", "ALTRO"]
    name: str = Field(..., min_length=1)
    content_type: str = Field(..., alias="contentType")
    size: int = Field(0, ge=0)

    model_config = {"populate_by_name": True}


class DocumentReview(BaseModel):
    decision: Literal["APPROVED", "REJECTED"]


class DocumentSchema(BaseModel):
    id: str
    case_id: str
    kind: str
    filename: str
    mime: str
    size: int
    status: str
    storage_path: str
    superseded_by: str | None = None
    uploaded_by: str
    reviewed_by: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


# ── Audit ────────────────────────────────────────────────────────────────────

class AuditEntrySchema(BaseModel):
    event_id: str
    event_type: str
    actor: str
    action: str
    resource_type: str | None = None
    resource_id: str | None = None
    details: dict
    current_hash: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AuditListResponse(BaseModel):
    items: list[AuditEntrySchema]
    chain_valid: bool  # hashes of the returned entries only


class AuditIntegrityResponse(BaseModel):
    valid: bool
    entries_checked: int
    first_invalid: str | None = None
    reason: str | None = None
