from casedesk.auth.errors import (
    AccessDenied,
    InvalidActionForResource,
    PolicyError,
    PolicyInputError,
    TransitionForbidden,
    UnknownCaseStatus,
    UnknownResource,
    UnknownRole,
)
from casedesk.auth.roles import Role, parse_role
from casedesk.auth.permissions import (
    Action,
    CAPABILITY_MATRIX,
    RESOURCE_ACTIONS,
    Resource,
    can,
    privileges_for,
)

__all__ = [
    "Role", "parse_role",
    "Resource", "Action", "CAPABILITY_MATRIX", "RESOURCE_ACTIONS", "can", "privileges_for",
    "PolicyError", "PolicyInputError", "UnknownRole", "UnknownResource",
    "InvalidActionForResource", "UnknownCaseStatus", "AccessDenied", "TransitionForbidden",
]
