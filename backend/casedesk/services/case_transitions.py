"""
Case status transition engine.

A move from one status to another is legal only when it is

  1. a structural edge of CASE_TRANSITIONS (nobody, ADMIN included, may skip
     a state), and
  2. permitted for the actor's role by the edge's tier.

    NEW ─> SCREENING ─┬─> APPROVED ─> ASSIGNED ─┬─> DOCS_REQUESTED <─┐
                      └─> REJECTED              └─> IN_PROGRESS <────┘
                                                      │
                                SUBMITTED <───────────┘
                                  ├─> FUNDED
                                  └─> CLOSED_LOST

REJECTED, FUNDED and CLOSED_LOST are terminal. There is no reopen edge.
"""

from __future__ import annotations

import logging
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from casedesk.auth.errors import TransitionForbidden, UnknownCaseStatus
from casedesk.auth.roles import Role, is_manager_plus, is_operator_or_above, parse_role

logger = logging.getLogger(__name__)


class CaseStatus(str, Enum):
    NEW = "NEW"
    SCREENING = "SCREENING"
    REJECTED = "REJECTED"
    APPROVED = "APPROVED"
    ASSIGNED = "ASSIGNED"
    DOCS_REQUESTED = "DOCS_REQUESTED"
    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTED = "SUBMITTED"
    FUNDED = "FUNDED"
    CLOSED_LOST = "CLOSED_LOST"


class EdgeTier(str, Enum):
    MANAGER_PLUS = "manager_plus"
    OPERATOR = "operator"


INITIAL_STATUS = CaseStatus.NEW

TERMINAL_STATUSES: frozenset[CaseStatus] = frozenset({
    CaseStatus.REJECTED,
    CaseStatus.FUNDED,
    CaseStatus.CLOSED_LOST,
})

# Order of each tuple is the order offered to the UI.
CASE_TRANSITIONS: Mapping[CaseStatus, tuple[CaseStatus, ...]] = MappingProxyType({
    CaseStatus.NEW: (CaseStatus.SCREENING,),
    CaseStatus.SCREENING: (CaseStatus.APPROVED, CaseStatus.REJECTED),
    CaseStatus.APPROVED: (CaseStatus.ASSIGNED,),
    CaseStatus.ASSIGNED: (CaseStatus.DOCS_REQUESTED, CaseStatus.IN_PROGRESS),
    CaseStatus.DOCS_REQUESTED: (CaseStatus.IN_PROGRESS,),
    CaseStatus.IN_PROGRESS: (CaseStatus.DOCS_REQUESTED, CaseStatus.SUBMITTED),
    CaseStatus.SUBMITTED: (CaseStatus.FUNDED, CaseStatus.CLOSED_LOST),
    CaseStatus.REJECTED: (),
    CaseStatus.FUNDED: (),
    CaseStatus.CLOSED_LOST: (),
})

# Screening, approval, assignment, submission and the final outcome.
MANAGER_PLUS_EDGES: frozenset[tuple[CaseStatus, CaseStatus]] = frozenset({
    (CaseStatus.NEW, CaseStatus.SCREENING),
    (CaseStatus.SCREENING, CaseStatus.APPROVED),
    (CaseStatus.SCREENING, CaseStatus.REJECTED),
    (CaseStatus.APPROVED, CaseStatus.ASSIGNED),
    (CaseStatus.IN_PROGRESS, CaseStatus.SUBMITTED),
    (CaseStatus.SUBMITTED, CaseStatus.FUNDED),
    (CaseStatus.SUBMITTED, CaseStatus.CLOSED_LOST),
})

# Day-to-day work on an assigned case, including the docs round-trip.
OPERATOR_EDGES: frozenset[tuple[CaseStatus, CaseStatus]] = frozenset({
    (CaseStatus.ASSIGNED, CaseStatus.DOCS_REQUESTED),
    (CaseStatus.ASSIGNED, CaseStatus.IN_PROGRESS),
    (CaseStatus.DOCS_REQUESTED, CaseStatus.IN_PROGRESS),
    (CaseStatus.IN_PROGRESS, CaseStatus.DOCS_REQUESTED),
})


def parse_case_status(value: CaseStatus | str) -> CaseStatus:
    if isinstance(value, CaseStatus):
        return value
    try:
        return CaseStatus(value)
    except ValueError:
        raise UnknownCaseStatus(value) from None


def is_structural_edge(from_status: CaseStatus | str, to_status: CaseStatus | str) -> bool:
    """True if the graph has an edge from -> to, regardless of role."""
    from_status = parse_case_status(from_status)
    to_status = parse_case_status(to_status)
    return to_status in CASE_TRANSITIONS[from_status]


def classify_edge(from_status: CaseStatus, to_status: CaseStatus) -> EdgeTier:
    """Minimum tier for an edge. Unlisted edges fall back to OPERATOR."""
    if (from_status, to_status) in MANAGER_PLUS_EDGES:
        return EdgeTier.MANAGER_PLUS
    return EdgeTier.OPERATOR


def can_transition(
    role: Role | str,
    from_status: CaseStatus | str,
    to_status: CaseStatus | str,
) -> bool:
    role = parse_role(role)
    from_status = parse_case_status(from_status)
    to_status = parse_case_status(to_status)

    if from_status == to_status:
        return False
    if to_status not in CASE_TRANSITIONS[from_status]:
        return False
    if role is Role.VIEWER:
        return False
    if role is Role.ADMIN:
        return True

    if classify_edge(from_status, to_status) is EdgeTier.MANAGER_PLUS:
        return is_manager_plus(role)
    return is_operator_or_above(role)


def assert_transition(
    role: Role | str,
    from_status: CaseStatus | str,
    to_status: CaseStatus | str,
) -> None:
    """Raise TransitionForbidden unless `can_transition` holds."""
    role = parse_role(role)
    from_status = parse_case_status(from_status)
    to_status = parse_case_status(to_status)
    if not can_transition(role, from_status, to_status):
        logger.info(
            "Transition rejected: role=%s %s -> %s",
            role.value, from_status.value, to_status.value,
        )
        raise TransitionForbidden(role.value, from_status.value, to_status.value)


def legal_next_statuses(role: Role | str, from_status: CaseStatus | str) -> list[CaseStatus]:
    """Statuses the role may move to from `from_status`, in adjacency order."""
    role = parse_role(role)
    from_status = parse_case_status(from_status)
    return [
        to_status
        for to_status in CASE_TRANSITIONS[from_status]
        if can_transition(role, from_status, to_status)
    ]
