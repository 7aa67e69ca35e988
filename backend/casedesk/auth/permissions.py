"""
Capability matrix: Role x Resource x Action -> bool.

Each protected resource has a privilege shape:

    generic     read, create, update, delete
    cases       generic + approve, assign
    documents   generic + approve, reject, upload

The matrix is literal data, built once at import time from frozen dataclasses
and exposed through a read-only mapping. Every role defines every resource;
a missing privilege is `False`, never an absent key.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from casedesk.auth.errors import InvalidActionForResource, UnknownResource
from casedesk.auth.roles import Role, parse_role


class Resource(str, Enum):
    ORGANIZATIONS = "organizations"
    MEMBERSHIPS = "memberships"
    COMPANIES = "companies"
    CASES = "cases"
    DOCUMENTS = "documents"
    TASKS = "tasks"
    SETTINGS = "settings"
    AUDIT = "audit"


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"
    ASSIGN = "assign"
    REJECT = "reject"
    UPLOAD = "upload"


# ── Privilege shapes ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Crud:
    read: bool = False
    create: bool = False
    update: bool = False
    delete: bool = False


@dataclass(frozen=True)
class CasePrivileges(Crud):
    approve: bool = False
    assign: bool = False


@dataclass(frozen=True)
class DocumentPrivileges(Crud):
    approve: bool = False
    reject: bool = False
    upload: bool = False


@dataclass(frozen=True)
class ResourcePrivileges:
    organizations: Crud
    memberships: Crud
    companies: Crud
    cases: CasePrivileges
    documents: DocumentPrivileges
    tasks: Crud
    settings: Crud
    audit: Crud

    def for_resource(self, resource: Resource) -> Crud:
        return getattr(self, resource.value)


def _shape_actions(shape: type[Crud]) -> frozenset[Action]:
    return frozenset(Action(f.name) for f in fields(shape))


_SHAPES: dict[Resource, type[Crud]] = {
    Resource.ORGANIZATIONS: Crud,
    Resource.MEMBERSHIPS: Crud,
    Resource.COMPANIES: Crud,
    Resource.CASES: CasePrivileges,
    Resource.DOCUMENTS: DocumentPrivileges,
    Resource.TASKS: Crud,
    Resource.SETTINGS: Crud,
    Resource.AUDIT: Crud,
}

RESOURCE_ACTIONS: Mapping[Resource, frozenset[Action]] = MappingProxyType(
    {resource: _shape_actions(shape) for resource, shape in _SHAPES.items()}
)


# ── Common rows ─────────────────────────────────────────────────────────────

_READ_ONLY = Crud(read=True)
_FULL_CRUD = Crud(read=True, create=True, update=True, delete=True)
_NO_ACCESS = Crud()
_AUDIT_READER = Crud(read=True)


# ── Viewer: read-only everywhere except audit ──
_VIEWER = ResourcePrivileges(
    organizations=_READ_ONLY,
    memberships=_READ_ONLY,
    companies=_READ_ONLY,
    cases=CasePrivileges(read=True),
    documents=DocumentPrivileges(read=True),
    tasks=_READ_ONLY,
    settings=_READ_ONLY,
    audit=_NO_ACCESS,
)

# ── Operator: works companies, cases, documents and tasks; can upload ──
_OPERATOR = ResourcePrivileges(
    organizations=_READ_ONLY,
    memberships=_READ_ONLY,
    companies=_FULL_CRUD,
    cases=CasePrivileges(read=True, create=True, update=True, delete=True),
    documents=DocumentPrivileges(
        read=True, create=True, update=True, delete=True, upload=True,
    ),
    tasks=_FULL_CRUD,
    settings=_READ_ONLY,
    audit=_NO_ACCESS,
)

# ── Manager: operator + approvals, assignment, audit read ──
_MANAGER = ResourcePrivileges(
    organizations=_READ_ONLY,
    memberships=_READ_ONLY,
    companies=_FULL_CRUD,
    cases=CasePrivileges(
        read=True, create=True, update=True, delete=True, approve=True, assign=True,
    ),
    documents=DocumentPrivileges(
        read=True, create=True, update=True, delete=True,
        approve=True, reject=True, upload=True,
    ),
    tasks=_FULL_CRUD,
    settings=_READ_ONLY,
    audit=_AUDIT_READER,
)

# ── Admin: everything, but audit stays read-only ──
_ADMIN = ResourcePrivileges(
    organizations=_FULL_CRUD,
    memberships=_FULL_CRUD,
    companies=_FULL_CRUD,
    cases=CasePrivileges(
        read=True, create=True, update=True, delete=True, approve=True, assign=True,
    ),
    documents=DocumentPrivileges(
        read=True, create=True, update=True, delete=True,
        approve=True, reject=True, upload=True,
    ),
    tasks=_FULL_CRUD,
    settings=_FULL_CRUD,
    audit=_AUDIT_READER,
)


CAPABILITY_MATRIX: Mapping[Role, ResourcePrivileges] = MappingProxyType({
    Role.VIEWER: _VIEWER,
    Role.OPERATOR: _OPERATOR,
    Role.MANAGER: _MANAGER,
    Role.ADMIN: _ADMIN,
})


# ── Lookups ─────────────────────────────────────────────────────────────────

def parse_resource(value: Resource | str) -> Resource:
    if isinstance(value, Resource):
        return value
    try:
        return Resource(value)
    except ValueError:
        raise UnknownResource(value) from None


def parse_action(resource: Resource, value: Action | str) -> Action:
    """Resolve an action name against the resource's privilege shape."""
    valid = RESOURCE_ACTIONS[resource]
    try:
        action = Action(value)
    except ValueError:
        action = None
    if action not in valid:
        raise InvalidActionForResource(
            resource.value, value, sorted(a.value for a in valid),
        )
    return action


def can(role: Role | str, resource: Resource | str, action: Action | str) -> bool:
    """
    True if `role` may perform `action` on `resource`.

    Raises UnknownRole / UnknownResource / InvalidActionForResource when the
    question itself is malformed; a legitimate denial is just `False`.
    """
    role = parse_role(role)
    resource = parse_resource(resource)
    action = parse_action(resource, action)
    privileges = CAPABILITY_MATRIX[role].for_resource(resource)
    return getattr(privileges, action.value)


def privileges_for(role: Role | str) -> dict[str, dict[str, bool]]:
    """The role's full privilege record as plain nested dicts."""
    return asdict(CAPABILITY_MATRIX[parse_role(role)])
