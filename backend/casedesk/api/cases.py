"""
Cases API

Case creation, detail, status transitions, assignment, event history, notes and
document registration / review. Authorization is enforced by CaseManager
through the RequestContext; handlers only translate bodies and responses.
"""

from fastapi import APIRouter, Depends

from casedesk.api.deps import get_case_manager, get_request_context
from casedesk.auth.context import RequestContext
from casedesk.models import Case, CaseDocument
from casedesk.schemas.schemas import (
    CaseAssign,
    CaseCreate,
    CaseDetail,
    CaseEventSchema,
    CaseNoteCreate,
    CaseNoteResponse,
    CaseStatusUpdate,
    DocumentReview,
    DocumentSchema,
    DocumentUpload,
    NextStatusesResponse,
)
from casedesk.services.case_manager import CaseManager

router = APIRouter(prefix="/api/cases", tags=["cases"])


# ── Helpers ──────────────────────────────────────────────────────────────────

def _case_detail(case: Case, ctx: RequestContext) -> CaseDetail:
    return CaseDetail(
        id=case.id,
        org_id=case.org_id,
        company_id=case.company_id,
        status=case.status.value,
        priority=case.priority,
        assigned_to=case.assigned_to,
        created_at=case.created_at,
        updated_at=case.updated_at,
        next_statuses=[s.value for s in ctx.next_statuses(case.status)],
    )


def _document(doc: CaseDocument) -> DocumentSchema:
    return DocumentSchema.model_validate(doc)


# ── POST /api/cases: open a case ────────────────────────────────────────────

@router.post("", response_model=CaseDetail, status_code=201)
async def create_case(
    body: CaseCreate,
    ctx: RequestContext = Depends(get_request_context),
    manager: CaseManager = Depends(get_case_manager),
):
    case = await manager.create_case(ctx, body.company_id, body.priority)
    return _case_detail(case, ctx)


@router.get("/{case_id}", response_model=CaseDetail)
async def get_case(
    case_id: str,
    ctx: RequestContext = Depends(get_request_context),
    manager: CaseManager = Depends(get_case_manager),
):
    case = await manager.get_case(ctx, case_id)
    return _case_detail(case, ctx)


@router.get("/{case_id}/transitions", response_model=NextStatusesResponse)
async def get_case_transitions(
    case_id: str,
    ctx: RequestContext = Depends(get_request_context),
    manager: CaseManager = Depends(get_case_manager),
):
    """Statuses the caller may move this case to right now."""
    case = await manager.get_case(ctx, case_id)
    return NextStatusesResponse(
        role=ctx.role.value,
        from_status=case.status.value,
        next_statuses=[s.value for s in ctx.next_statuses(case.status)],
    )


# ── PATCH /api/cases/{case_id}/status: transition case status ──────────────

@router.patch("/{case_id}/status", response_model=CaseDetail)
async def update_case_status(
    case_id: str,
    body: CaseStatusUpdate,
    ctx: RequestContext = Depends(get_request_context),
    manager: CaseManager = Depends(get_case_manager),
):
    """
    Move a case along the workflow.

    403 TRANSITION_FORBIDDEN when the edge does not exist or the role's tier
    is too low; 400 DOCS_REQUIRED_MISSING when submitting without the
    organization's required approved documents.
    """
    case = await manager.update_status(ctx, case_id, body.to)
    return _case_detail(case, ctx)


# ── PATCH /api/cases/{case_id}/assign: assign an operator ──────────────────

@router.patch("/{case_id}/assign", response_model=CaseDetail)
async def assign_case(
    case_id: str,
    body: CaseAssign,
    ctx: RequestContext = Depends(get_request_context),
    manager: CaseManager = Depends(get_case_manager),
):
    case = await manager.assign_case(ctx, case_id, body.assigned_to)
    return _case_detail(case, ctx)


@router.get("/{case_id}/events", response_model=list[CaseEventSchema])
async def list_case_events(
    case_id: str,
    ctx: RequestContext = Depends(get_request_context),
    manager: CaseManager = Depends(get_case_manager),
):
    events = await manager.list_events(ctx, case_id)
    return [CaseEventSchema.model_validate(e) for e in events]


@router.post("/{case_id}/events", response_model=CaseNoteResponse, status_code=201)
async def add_case_note(
    case_id: str,
    body: CaseNoteCreate,
    ctx: RequestContext = Depends(get_request_context),
    manager: CaseManager = Depends(get_case_manager),
):
    """Add a NOTE or COMMENT to the case timeline."""
    event = await manager.add_note(ctx, case_id, body.type, body.content)
    return CaseNoteResponse(id=event.id, type=event.type, content=event.payload["content"])


# ── Documents ────────────────────────────────────────────────────────────────

@router.get("/{case_id}/documents", response_model=list[DocumentSchema])
async def list_case_documents(
    case_id: str,
    ctx: RequestContext = Depends(get_request_context),
    manager: CaseManager = Depends(get_case_manager),
):
    return [_document(d) for d in await manager.list_documents(ctx, case_id)]


@router.post("/{case_id}/documents", response_model=DocumentSchema, status_code=201)
async def upload_case_document(
    case_id: str,
    body: DocumentUpload,
    ctx: RequestContext = Depends(get_request_context),
    manager: CaseManager = Depends(get_case_manager),
):
    doc = await manager.register_document(
        ctx,
        case_id,
        kind=body.kind,
        name=body.name,
        content_type=body.content_type,
        size=body.size,
    )
    return _document(doc)


@router.patch("/{case_id}/documents/{document_id}", response_model=DocumentSchema)
async def review_case_document(
    case_id: str,
    document_id: str,
    body: DocumentReview,
    ctx: RequestContext = Depends(get_request_context),
    manager: CaseManager = Depends(get_case_manager),
):
    doc = await manager.review_document(ctx, case_id, document_id, body.decision)
    return _document(doc)
