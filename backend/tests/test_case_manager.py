"""Tests for the case workflow service."""

import pytest

from casedesk.auth.errors import AccessDenied, TransitionForbidden
from casedesk.auth.roles import Role
from casedesk.services.case_manager import (
    AssigneeNotFound,
    CaseManager,
    CaseNotFound,
    DocsRequiredMissing,
    DocumentTooLarge,
    InvalidCaseInput,
    UnsupportedDocumentType,
)
from casedesk.services.case_store import InMemoryCaseStore
from casedesk.services.case_transitions import CaseStatus
from tests.conftest import OTHER_ORG_ID, make_ctx

ADMIN = make_ctx(Role.ADMIN)
MANAGER = make_ctx(Role.MANAGER)
OPERATOR = make_ctx(Role.OPERATOR)
VIEWER = make_ctx(Role.VIEWER)


async def _walk(manager: CaseManager, case_id: str, *statuses: str) -> None:
    for status in statuses:
        await manager.update_status(MANAGER, case_id, status)


async def _approve_doc(manager: CaseManager, case_id: str, kind: str = "ID") -> str:
    doc = await manager.register_document(
        OPERATOR, case_id, kind=kind, name=f"{kind.lower()}.pdf",
        content_type="application/pdf", size=1024,
    )
    await manager.review_document(MANAGER, case_id, doc.id, "APPROVED")
    return doc.id


@pytest.mark.asyncio
class TestCreateCase:
    async def test_operator_creates_case_in_new(self, manager: CaseManager):
        case = await manager.create_case(OPERATOR, "company-1", "HIGH")
        assert case.status is CaseStatus.NEW
        assert case.priority == "HIGH"

        events = await manager.list_events(VIEWER, case.id)
        assert [e.type for e in events] == ["CREATED"]

    async def test_viewer_cannot_create(self, manager: CaseManager):
        with pytest.raises(AccessDenied):
            await manager.create_case(VIEWER, "company-1")

    async def test_invalid_priority(self, manager: CaseManager):
        with pytest.raises(InvalidCaseInput):
            await manager.create_case(OPERATOR, "company-1", "URGENT")

    async def test_cases_are_scoped_to_org(self, manager: CaseManager):
        case = await manager.create_case(OPERATOR, "company-1")
        with pytest.raises(CaseNotFound):
            await manager.get_case(make_ctx(Role.ADMIN, org_id=OTHER_ORG_ID), case.id)


@pytest.mark.asyncio
class TestUpdateStatus:
    async def test_status_change_appends_event_and_audit(self, manager: CaseManager, audit):
        case = await manager.create_case(OPERATOR, "company-1")
        updated = await manager.update_status(MANAGER, case.id, "SCREENING")
        assert updated.status is CaseStatus.SCREENING

        stored = await manager.get_case(VIEWER, case.id)
        assert stored.status is CaseStatus.SCREENING

        events = await manager.list_events(VIEWER, case.id)
        assert events[-1].type == "STATUS_CHANGE"
        assert events[-1].payload == {"from": "NEW", "to": "SCREENING"}
        assert events[-1].actor == MANAGER.actor

        entries = await audit.get_entries(MANAGER.org_id, event_type="case_status_changed")
        assert len(entries) == 1
        assert entries[0].details == {"old_status": "NEW", "new_status": "SCREENING"}

    async def test_operator_cannot_screen(self, manager: CaseManager):
        case = await manager.create_case(OPERATOR, "company-1")
        with pytest.raises(TransitionForbidden):
            await manager.update_status(OPERATOR, case.id, "SCREENING")

        stored = await manager.get_case(VIEWER, case.id)
        assert stored.status is CaseStatus.NEW
        assert [e.type for e in await manager.list_events(VIEWER, case.id)] == ["CREATED"]

    async def test_operator_works_the_docs_loop(self, manager: CaseManager):
        case = await manager.create_case(OPERATOR, "company-1")
        await _walk(manager, case.id, "SCREENING", "APPROVED", "ASSIGNED")

        await manager.update_status(OPERATOR, case.id, "DOCS_REQUESTED")
        await manager.update_status(OPERATOR, case.id, "IN_PROGRESS")
        await manager.update_status(OPERATOR, case.id, "DOCS_REQUESTED")
        stored = await manager.get_case(VIEWER, case.id)
        assert stored.status is CaseStatus.DOCS_REQUESTED

    async def test_skipping_a_state_is_forbidden_even_for_admin(self, manager: CaseManager):
        case = await manager.create_case(OPERATOR, "company-1")
        with pytest.raises(TransitionForbidden):
            await manager.update_status(ADMIN, case.id, "APPROVED")

    async def test_missing_case(self, manager: CaseManager):
        with pytest.raises(CaseNotFound):
            await manager.update_status(ADMIN, "does-not-exist", "SCREENING")

    async def test_submit_requires_approved_id_document(self, manager: CaseManager):
        case = await manager.create_case(OPERATOR, "company-1")
        await _walk(manager, case.id, "SCREENING", "APPROVED", "ASSIGNED", "IN_PROGRESS")

        with pytest.raises(DocsRequiredMissing) as exc_info:
            await manager.update_status(MANAGER, case.id, "SUBMITTED")
        assert exc_info.value.missing == ["ID"]

        await _approve_doc(manager, case.id, "ID")
        updated = await manager.update_status(MANAGER, case.id, "SUBMITTED")
        assert updated.status is CaseStatus.SUBMITTED

        funded = await manager.update_status(MANAGER, case.id, "FUNDED")
        assert funded.status is CaseStatus.FUNDED
        with pytest.raises(TransitionForbidden):
            await manager.update_status(ADMIN, case.id, "SUBMITTED")

    async def test_org_required_docs_override(self, manager: CaseManager, store: InMemoryCaseStore):
        await store.set_required_docs(MANAGER.org_id, ["ID", "IBAN"])
        case = await manager.create_case(OPERATOR, "company-1")
        await _walk(manager, case.id, "SCREENING", "APPROVED", "ASSIGNED", "IN_PROGRESS")
        await _approve_doc(manager, case.id, "ID")

        with pytest.raises(DocsRequiredMissing) as exc_info:
            await manager.update_status(MANAGER, case.id, "SUBMITTED")
        assert exc_info.value.missing == ["IBAN"]

    async def test_empty_required_docs_allows_submission(self, manager: CaseManager, store):
        await store.set_required_docs(MANAGER.org_id, [])
        case = await manager.create_case(OPERATOR, "company-1")
        await _walk(manager, case.id, "SCREENING", "APPROVED", "ASSIGNED", "IN_PROGRESS", "SUBMITTED")
        assert (await manager.get_case(VIEWER, case.id)).status is CaseStatus.SUBMITTED

    async def test_superseded_approval_does_not_count(self, manager: CaseManager):
        case = await manager.create_case(OPERATOR, "company-1")
        await _walk(manager, case.id, "SCREENING", "APPROVED", "ASSIGNED", "IN_PROGRESS")
        await _approve_doc(manager, case.id, "ID")
        await manager.register_document(
            OPERATOR, case.id, kind="ID", name="id-v2.png", content_type="image/png",
        )

        with pytest.raises(DocsRequiredMissing):
            await manager.update_status(MANAGER, case.id, "SUBMITTED")


@pytest.mark.asyncio
class TestAssignment:
    async def test_manager_assigns(self, manager: CaseManager):
        await manager.register_member(OPERATOR)
        case = await manager.create_case(OPERATOR, "company-1")
        updated = await manager.assign_case(MANAGER, case.id, "operator-user")
        assert updated.assigned_to == "operator-user"
        events = await manager.list_events(VIEWER, case.id)
        assert events[-1].type == "ASSIGNMENT"
        assert events[-1].payload == {"assigned_to": "operator-user"}

    async def test_operator_cannot_assign(self, manager: CaseManager):
        case = await manager.create_case(OPERATOR, "company-1")
        with pytest.raises(AccessDenied):
            await manager.assign_case(OPERATOR, case.id, "someone")

    async def test_assignee_must_be_org_member(self, manager: CaseManager, audit):
        await manager.register_member(make_ctx(Role.OPERATOR, org_id=OTHER_ORG_ID, user_id="outsider"))
        case = await manager.create_case(OPERATOR, "company-1")

        for assignee in ("nobody-at-all", "outsider"):
            with pytest.raises(AssigneeNotFound) as exc_info:
                await manager.assign_case(MANAGER, case.id, assignee)
            assert exc_info.value.status_code == 404

        stored = await manager.get_case(VIEWER, case.id)
        assert stored.assigned_to is None
        assert [e.type for e in await manager.list_events(VIEWER, case.id)] == ["CREATED"]
        assert await audit.get_entries(MANAGER.org_id, event_type="case_assigned") == []


@pytest.mark.asyncio
class TestNotes:
    async def test_note_is_appended_to_timeline(self, manager: CaseManager):
        case = await manager.create_case(OPERATOR, "company-1")
        event = await manager.add_note(VIEWER, case.id, "note", "  called the client  ")
        assert event.type == "NOTE"
        assert event.payload == {"content": "called the client"}
        assert event.actor == VIEWER.actor

        events = await manager.list_events(VIEWER, case.id)
        assert events[-1].id == event.id

    async def test_type_is_normalised(self, manager: CaseManager):
        case = await manager.create_case(OPERATOR, "company-1")
        assert (await manager.add_note(OPERATOR, case.id, "comment", "x")).type == "COMMENT"
        assert (await manager.add_note(OPERATOR, case.id, "COMMENT", "x")).type == "COMMENT"
        assert (await manager.add_note(OPERATOR, case.id, "STATUS_CHANGE", "x")).type == "NOTE"
        assert (await manager.add_note(OPERATOR, case.id, "", "x")).type == "NOTE"

    async def test_blank_content(self, manager: CaseManager):
        case = await manager.create_case(OPERATOR, "company-1")
        with pytest.raises(InvalidCaseInput):
            await manager.add_note(OPERATOR, case.id, "NOTE", "   ")

    async def test_other_org_case(self, manager: CaseManager):
        case = await manager.create_case(OPERATOR, "company-1")
        with pytest.raises(CaseNotFound):
            await manager.add_note(make_ctx(Role.ADMIN, org_id=OTHER_ORG_ID), case.id, "NOTE", "hi")


@pytest.mark.asyncio
class TestDocuments:
    async def test_viewer_cannot_upload(self, manager: CaseManager):
        case = await manager.create_case(OPERATOR, "company-1")
        with pytest.raises(AccessDenied):
            await manager.register_document(
                VIEWER, case.id, kind="ID", name="id.pdf", content_type="application/pdf",
            )

    async def test_upload_sets_storage_path_and_supersedes(self, manager: CaseManager):
        case = await manager.create_case(OPERATOR, "company-1")
        first = await manager.register_document(
            OPERATOR, case.id, kind="DURC", name="durc.PDF", content_type="application/pdf",
        )
        assert first.status == "PENDING"
        assert first.storage_path == f"{OPERATOR.org_id}/{case.id}/{first.id}.pdf"

        second = await manager.register_document(
            OPERATOR, case.id, kind="DURC", name="durc2.pdf", content_type="application/pdf",
        )
        docs = {d.id: d for d in await manager.list_documents(VIEWER, case.id)}
        assert docs[first.id].superseded_by == second.id
        assert docs[second.id].superseded_by is None

    async def test_unsupported_type(self, manager: CaseManager):
        case = await manager.create_case(OPERATOR, "company-1")
        with pytest.raises(UnsupportedDocumentType):
            await manager.register_document(
                OPERATOR, case.id, kind="ID", name="id.exe", content_type="application/x-msdownload",
            )

    async def test_too_large(self, manager: CaseManager):
        case = await manager.create_case(OPERATOR, "company-1")
        with pytest.raises(DocumentTooLarge) as exc_info:
            await manager.register_document(
                OPERATOR, case.id, kind="ID", name="id.pdf",
                content_type="application/pdf", size=11 * 1024 * 1024,
            )
        assert exc_info.value.status_code == 413

    async def test_operator_cannot_approve_or_reject(self, manager: CaseManager):
        case = await manager.create_case(OPERATOR, "company-1")
        doc = await manager.register_document(
            OPERATOR, case.id, kind="ID", name="id.pdf", content_type="application/pdf",
        )
        for decision in ("APPROVED", "REJECTED"):
            with pytest.raises(AccessDenied):
                await manager.review_document(OPERATOR, case.id, doc.id, decision)

    async def test_manager_rejects(self, manager: CaseManager):
        case = await manager.create_case(OPERATOR, "company-1")
        doc = await manager.register_document(
            OPERATOR, case.id, kind="ID", name="id.pdf", content_type="application/pdf",
        )
        reviewed = await manager.review_document(MANAGER, case.id, doc.id, "REJECTED")
        assert reviewed.status == "REJECTED"
        assert reviewed.reviewed_by == MANAGER.user_id

    async def test_invalid_decision(self, manager: CaseManager):
        case = await manager.create_case(OPERATOR, "company-1")
        doc = await manager.register_document(
            OPERATOR, case.id, kind="ID", name="id.pdf", content_type="application/pdf",
        )
        for decision in ("MAYBE", "PENDING"):
            with pytest.raises(InvalidCaseInput):
                await manager.review_document(MANAGER, case.id, doc.id, decision)
        docs = await manager.list_documents(VIEWER, case.id)
        assert docs[0].status == "PENDING"

    async def test_document_of_another_case(self, manager: CaseManager):
        case_a = await manager.create_case(OPERATOR, "company-1")
        case_b = await manager.create_case(OPERATOR, "company-2")
        doc = await manager.register_document(
            OPERATOR, case_a.id, kind="ID", name="id.pdf", content_type="application/pdf",
        )
        with pytest.raises(CaseNotFound):
            await manager.review_document(MANAGER, case_b.id, doc.id, "APPROVED")
