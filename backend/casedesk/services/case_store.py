"""
Case store: the storage contract the case workflow depends on.

The managed database lives outside this service; `CaseStore` is the narrow
interface the workflow needs and `InMemoryCaseStore` keeps records in
process. Every lookup is scoped by org_id. Memberships are learned from
the gateway-verified identities of callers (see CaseManager.register_member).
"""

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from typing import Protocol

from casedesk.models import Case, CaseDocument, CaseEvent


class CaseStore(Protocol):
    async def add_case(self, case: Case) -> Case: ...
    async def get_case(self, org_id: str, case_id: str) -> Case | None: ...
    async def save_case(self, case: Case) -> Case: ...
    async def append_event(self, event: CaseEvent) -> CaseEvent: ...
    async def list_events(self, case_id: str) -> list[CaseEvent]: ...
    async def add_document(self, document: CaseDocument) -> CaseDocument: ...
    async def get_document(self, org_id: str, case_id: str, document_id: str) -> CaseDocument | None: ...
    async def save_document(self, document: CaseDocument) -> CaseDocument: ...
    async def list_documents(self, org_id: str, case_id: str) -> list[CaseDocument]: ...
    async def get_required_docs(self, org_id: str) -> list[str] | None: ...
    async def set_required_docs(self, org_id: str, kinds: list[str]) -> None: ...
    async def add_member(self, org_id: str, user_id: str) -> None: ...
    async def is_member(self, org_id: str, user_id: str) -> bool: ...


class InMemoryCaseStore:
    """Dict-backed CaseStore. Returned records are copies."""

    def __init__(self):
        self._cases: dict[tuple[str, str], Case] = {}
        self._events: dict[str, list[CaseEvent]] = {}
        self._documents: dict[tuple[str, str], CaseDocument] = {}
        self._required_docs: dict[str, list[str]] = {}
        self._members: dict[str, set[str]] = {}
        self._lock = asyncio.Lock()

    # ── Cases ────────────────────────────────────────────────────────────────

    async def add_case(self, case: Case) -> Case:
        async with self._lock:
            self._cases[(case.org_id, case.id)] = replace(case)
        return case

    async def get_case(self, org_id: str, case_id: str) -> Case | None:
        case = self._cases.get((org_id, case_id))
        return replace(case) if case else None

    async def save_case(self, case: Case) -> Case:
        async with self._lock:
            case.updated_at = datetime.now(timezone.utc)
            self._cases[(case.org_id, case.id)] = replace(case)
        return case

    # ── Events ───────────────────────────────────────────────────────────────

    async def append_event(self, event: CaseEvent) -> CaseEvent:
        async with self._lock:
            self._events.setdefault(event.case_id, []).append(event)
        return event

    async def list_events(self, case_id: str) -> list[CaseEvent]:
        return list(self._events.get(case_id, []))

    # ── Documents ────────────────────────────────────────────────────────────

    async def add_document(self, document: CaseDocument) -> CaseDocument:
        async with self._lock:
            self._documents[(document.org_id, document.id)] = replace(document)
        return document

    async def get_document(self, org_id: str, case_id: str, document_id: str) -> CaseDocument | None:
        doc = self._documents.get((org_id, document_id))
        if doc is None or doc.case_id != case_id:
            return None
        return replace(doc)

    async def save_document(self, document: CaseDocument) -> CaseDocument:
        async with self._lock:
            self._documents[(document.org_id, document.id)] = replace(document)
        return document

    async def list_documents(self, org_id: str, case_id: str) -> list[CaseDocument]:
        docs = [
            replace(d) for (doc_org, _), d in self._documents.items()
            if doc_org == org_id and d.case_id == case_id
        ]
        return sorted(docs, key=lambda d: d.created_at)

    # ── Organization settings ────────────────────────────────────────────────

    async def get_required_docs(self, org_id: str) -> list[str] | None:
        kinds = self._required_docs.get(org_id)
        return list(kinds) if kinds is not None else None

    async def set_required_docs(self, org_id: str, kinds: list[str]) -> None:
        async with self._lock:
            self._required_docs[org_id] = list(kinds)

    # ── Memberships ──────────────────────────────────────────────────────────

    async def add_member(self, org_id: str, user_id: str) -> None:
        async with self._lock:
            self._members.setdefault(org_id, set()).add(user_id)

    async def is_member(self, org_id: str, user_id: str) -> bool:
        return user_id in self._members.get(org_id, ())
