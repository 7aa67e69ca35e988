"""
Audit API

Read-only view of the organization's audit trail. Only roles with
audit.read (MANAGER, ADMIN) get through; no role may write audit entries
through the API.
"""

from fastapi import APIRouter, Depends, Query

from casedesk.api.deps import get_audit_service, require
from casedesk.auth.context import RequestContext
from casedesk.auth.permissions import Action, Resource
from casedesk.schemas.schemas import AuditEntrySchema, AuditIntegrityResponse, AuditListResponse
from casedesk.services.audit_service import AuditService

router = APIRouter(prefix="/api/audit", tags=["audit"])


@router.get("", response_model=AuditListResponse)
async def list_audit_entries(
    event_type: str | None = Query(None),
    resource_type: str | None = Query(None),
    resource_id: str | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    ctx: RequestContext = Depends(require(Resource.AUDIT, Action.READ)),
    audit: AuditService = Depends(get_audit_service),
):
    entries = await audit.get_entries(
        ctx.org_id,
        event_type=event_type,
        resource_type=resource_type,
        resource_id=resource_id,
        limit=limit,
        offset=offset,
    )
    return AuditListResponse(
        items=[AuditEntrySchema.model_validate(e) for e in entries],
        chain_valid=audit.verify_entries(entries),
    )


@router.get("/verify", response_model=AuditIntegrityResponse)
async def verify_audit_chain(
    ctx: RequestContext = Depends(require(Resource.AUDIT, Action.READ)),
    audit: AuditService = Depends(get_audit_service),
):
    """Walk the whole chain. Slower than the per-page check on the list endpoint."""
    return AuditIntegrityResponse(**await audit.verify_chain_integrity())
