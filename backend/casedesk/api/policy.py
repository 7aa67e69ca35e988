"""
Policy API: lets clients ask what the caller may do.

Used by the UI to gate buttons and populate the status picker; the mutating
endpoints re-check everything server-side.
"""

from fastapi import APIRouter, Depends, Query

from casedesk.api.deps import get_request_context
from casedesk.auth.context import RequestContext
from casedesk.auth.permissions import privileges_for
from casedesk.schemas.schemas import (
    MeResponse,
    NextStatusesResponse,
    PolicyCheckRequest,
    PolicyCheckResponse,
    WorkflowResponse,
)
from casedesk.services.case_transitions import (
    CASE_TRANSITIONS,
    INITIAL_STATUS,
    TERMINAL_STATUSES,
    CaseStatus,
    parse_case_status,
)

router = APIRouter(prefix="/api", tags=["policy"])


@router.get("/me", response_model=MeResponse)
async def me(ctx: RequestContext = Depends(get_request_context)):
    """Caller identity plus the full privilege record for their role."""
    return MeResponse(
        user_id=ctx.user_id,
        org_id=ctx.org_id,
        role=ctx.role.value,
        privileges=privileges_for(ctx.role),
    )


@router.post("/policy/check", response_model=PolicyCheckResponse)
async def check_permission(
    body: PolicyCheckRequest,
    ctx: RequestContext = Depends(get_request_context),
):
    """
    Answer "may I perform action on resource?".

    A legitimate denial is `allowed: false` with 200; an unknown resource or
    an action outside the resource's shape is a 400.
    """
    return PolicyCheckResponse(
        role=ctx.role.value,
        resource=body.resource,
        action=body.action,
        allowed=ctx.can(body.resource, body.action),
    )


@router.get("/policy/workflow", response_model=WorkflowResponse)
async def workflow(ctx: RequestContext = Depends(get_request_context)):
    return WorkflowResponse(
        statuses=[s.value for s in CaseStatus],
        initial=INITIAL_STATUS.value,
        terminal=[s.value for s in CaseStatus if s in TERMINAL_STATUSES],
        transitions={
            src.value: [dst.value for dst in targets]
            for src, targets in CASE_TRANSITIONS.items()
        },
    )


@router.get("/policy/transitions", response_model=NextStatusesResponse)
async def next_statuses(
    from_status: str = Query(...),
    ctx: RequestContext = Depends(get_request_context),
):
    status = parse_case_status(from_status)
    return NextStatusesResponse(
        role=ctx.role.value,
        from_status=status.value,
        next_statuses=[s.value for s in ctx.next_statuses(status)],
    )
