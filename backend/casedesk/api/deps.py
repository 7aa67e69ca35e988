"""
API Dependencies: request context, permission guards, services.

Authentication happens upstream: the gateway verifies the session and the
caller's membership, then forwards the identity as headers:

    X-Org-Id    tenant (UUID)
    X-User-Id   authenticated user
    X-Role      membership role in that tenant (VIEWER|OPERATOR|MANAGER|ADMIN)

`get_request_context` turns those into a RequestContext. A malformed org id
or an unknown role is a client error (400), never a silent downgrade. Every
verified caller is recorded as a member of its org; case assignment only
accepts recorded members.
"""

from uuid import UUID

from fastapi import Depends, Request

from casedesk.auth.context import RequestContext
from casedesk.auth.errors import InvalidOrgHeader, MissingIdentity
from casedesk.auth.permissions import Action, Resource, parse_action, parse_resource
from casedesk.auth.roles import parse_role
from casedesk.services.audit_service import AuditService
from casedesk.services.case_manager import CaseManager


# ── Services ─────────────────────────────────────────────────────────────────

def get_case_manager(request: Request) -> CaseManager:
    return request.app.state.case_manager


def get_audit_service(request: Request) -> AuditService:
    return request.app.state.audit


# ── Request context ──────────────────────────────────────────────────────────

async def get_request_context(
    request: Request,
    manager: CaseManager = Depends(get_case_manager),
) -> RequestContext:
    org_id = request.headers.get("X-Org-Id", "")
    try:
        UUID(org_id)
    except ValueError:
        raise InvalidOrgHeader() from None

    user_id = request.headers.get("X-User-Id")
    if not user_id:
        raise MissingIdentity()

    # UnknownRole propagates to the PolicyError handler (400)
    role = parse_role(request.headers.get("X-Role", ""))

    ctx = RequestContext(org_id=org_id, user_id=user_id, role=role)
    await manager.register_member(ctx)
    return ctx


# ── Permission guards ────────────────────────────────────────────────────────

def require(resource: Resource, action: Action):
    """
    FastAPI dependency that checks the caller may perform resource.action.

    Usage:
        @router.get("/audit")
        async def list_audit(ctx: RequestContext = Depends(require(Resource.AUDIT, Action.READ))):
            ...
    """
    # Fail at import time if a route declares a nonsensical guard
    resource = parse_resource(resource)
    action = parse_action(resource, action)

    async def _check(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
        ctx.require(resource, action)
        return ctx
    return _check
