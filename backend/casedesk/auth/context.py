"""
RequestContext: who is asking, in which organization, with which role.

Every API request gets a RequestContext built from the identity headers the
upstream gateway sets (see deps.get_request_context). All authorization in
the request path goes through it so decisions are logged and counted in one
place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from casedesk.auth.errors import AccessDenied, TransitionForbidden
from casedesk.auth.permissions import Action, Resource, can, parse_action, parse_resource
from casedesk.auth.roles import Role
from casedesk.middleware.metrics import authorization_decisions_total, case_transitions_total
from casedesk.services.case_transitions import (
    CaseStatus,
    assert_transition,
    legal_next_statuses,
    parse_case_status,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    org_id: str
    user_id: str = "anonymous"
    role: Role = Role.VIEWER

    def can(self, resource: Resource | str, action: Action | str) -> bool:
        return can(self.role, resource, action)

    def require(self, resource: Resource | str, action: Action | str) -> None:
        """Raise AccessDenied (403) if the role lacks resource.action."""
        resource = parse_resource(resource)
        action = parse_action(resource, action)
        allowed = can(self.role, resource, action)
        authorization_decisions_total.labels(
            resource=resource.value,
            action=action.value,
            outcome="allow" if allowed else "deny",
        ).inc()
        if not allowed:
            logger.info(
                "Access denied: %s cannot %s %s (org=%s)",
                self.actor, action.value, resource.value, self.org_id,
            )
            raise AccessDenied(self.role.value, resource.value, action.value)

    def require_transition(self, from_status: CaseStatus | str, to_status: CaseStatus | str) -> None:
        """Raise TransitionForbidden (403) unless the role may make the move."""
        from_status = parse_case_status(from_status)
        to_status = parse_case_status(to_status)
        try:
            assert_transition(self.role, from_status, to_status)
        except TransitionForbidden:
            case_transitions_total.labels(
                from_status=from_status.value, to_status=to_status.value, outcome="forbidden",
            ).inc()
            raise
        case_transitions_total.labels(
            from_status=from_status.value, to_status=to_status.value, outcome="allowed",
        ).inc()

    def next_statuses(self, from_status: CaseStatus | str) -> list[CaseStatus]:
        return legal_next_statuses(self.role, from_status)

    @property
    def actor(self) -> str:
        """Identity string for audit logging."""
        return f"{self.role.value}:{self.user_id}"
