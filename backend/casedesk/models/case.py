"""Case, case event and document records held by the case store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import uuid4

from casedesk.services.case_transitions import INITIAL_STATUS, CaseStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


CASE_PRIORITIES = ("LOW", "MEDIUM", "HIGH")

DOCUMENT_KINDS = ("ID", "IBAN", "BILANCIO", "DURC", "ALTRO")


@dataclass
class Case:
    org_id: str
    company_id: str
    priority: str = "MEDIUM"
    status: CaseStatus = INITIAL_STATUS
    assigned_to: str | None = None
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


@dataclass
class CaseEvent:
    case_id: str
    type: str  # CREATED | STATUS_CHANGE | ASSIGNMENT | NOTE | COMMENT | DOCUMENT_*
    actor: str
    payload: dict = field(default_factory=dict)
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class CaseDocument:
    case_id: str
    org_id: str
    kind: str
    filename: str
    mime: str
    size: int
    uploaded_by: str
    status: str = "PENDING"
    storage_path: str = ""
    superseded_by: str | None = None
    reviewed_by: str | None = None
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)
