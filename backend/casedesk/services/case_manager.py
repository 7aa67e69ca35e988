"""
Case Manager Service

Applies changes to a case on behalf of an authenticated actor:
- Creation
- Status transitions (role-gated, required-documents gate before SUBMITTED)
- Assignment (assignee must be a member of the org)
- Notes and comments on the event timeline
- Document registration and review

Every accepted change appends a case event and an audit entry. Every
rejection is raised to the caller; nothing here swallows a denial.
"""

import logging
from dataclasses import replace

from casedesk.auth.context import RequestContext
from casedesk.auth.permissions import Action, Resource
from casedesk.config import Settings
from casedesk.models import (
    CASE_PRIORITIES,
    DOCUMENT_KINDS,
    Case,
    CaseDocument,
    CaseEvent,
)
from casedesk.services.audit_service import AuditService
from casedesk.services.case_store import CaseStore
from casedesk.services.case_transitions import CaseStatus, parse_case_status

logger = logging.getLogger(__name__)


# ── Errors ───────────────────────────────────────────────────────────────────

class CaseWorkflowError(Exception):
    code = "CASE_WORKFLOW_ERROR"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CaseNotFound(CaseWorkflowError):
    code = "NOT_FOUND"
    status_code = 404


class InvalidCaseInput(CaseWorkflowError):
    code = "VALIDATION_ERROR"


class AssigneeNotFound(CaseWorkflowError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__("Assignee not found in org")


class DocsRequiredMissing(CaseWorkflowError):
    code = "DOCS_REQUIRED_MISSING"

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing approved documents: {', '.join(missing)}")


class UnsupportedDocumentType(CaseWorkflowError):
    code = "UNSUPPORTED_TYPE"


class DocumentTooLarge(CaseWorkflowError):
    code = "FILE_TOO_LARGE"
    status_code = 413


# Review decision -> document action it requires
_REVIEW_ACTIONS = {
    "APPROVED": Action.APPROVE,
    "REJECTED": Action.REJECT,
}


class CaseManager:
    """Manages the case lifecycle for one organization at a time."""

    def __init__(self, store: CaseStore, audit: AuditService, settings: Settings):
        self.store = store
        self.audit = audit
        self.settings = settings

    async def register_member(self, ctx: RequestContext) -> None:
        """Record the caller as a member of its org. The gateway has already
        verified the membership before forwarding the identity."""
        await self.store.add_member(ctx.org_id, ctx.user_id)

    async def _get_case_or_404(self, ctx: RequestContext, case_id: str) -> Case:
        case = await self.store.get_case(ctx.org_id, case_id)
        if case is None:
            raise CaseNotFound(f"Case {case_id} not found")
        return case

    # ── Creation ─────────────────────────────────────────────────────────────

    async def create_case(
        self,
        ctx: RequestContext,
        company_id: str,
        priority: str = "MEDIUM",
    ) -> Case:
        ctx.require(Resource.CASES, Action.CREATE)
        if priority not in CASE_PRIORITIES:
            raise InvalidCaseInput(
                f"Invalid priority: {priority}. Valid: {list(CASE_PRIORITIES)}"
            )

        case = await self.store.add_case(
            Case(org_id=ctx.org_id, company_id=company_id, priority=priority)
        )
        await self.store.append_event(CaseEvent(
            case_id=case.id,
            type="CREATED",
            actor=ctx.actor,
            payload={"company_id": company_id, "priority": priority},
        ))
        await self.audit.log_case_created(ctx.org_id, case.id, company_id, ctx.actor)
        return case

    async def get_case(self, ctx: RequestContext, case_id: str) -> Case:
        ctx.require(Resource.CASES, Action.READ)
        return await self._get_case_or_404(ctx, case_id)

    # ── Status transitions ───────────────────────────────────────────────────

    async def update_status(
        self,
        ctx: RequestContext,
        case_id: str,
        to_status: CaseStatus | str,
    ) -> Case:
        """
        Move a case to `to_status`.

        Fails with TransitionForbidden when the edge does not exist or the
        role's tier is too low, and with DocsRequiredMissing when submitting
        without the organization's required approved documents.
        """
        to_status = parse_case_status(to_status)
        case = await self._get_case_or_404(ctx, case_id)
        old_status = case.status

        ctx.require_transition(old_status, to_status)

        if to_status is CaseStatus.SUBMITTED:
            await self._check_required_docs(ctx, case)

        case.status = to_status
        await self.store.save_case(case)

        await self.store.append_event(CaseEvent(
            case_id=case.id,
            type="STATUS_CHANGE",
            actor=ctx.actor,
            payload={"from": old_status.value, "to": to_status.value},
        ))
        await self.audit.log_case_updated(
            ctx.org_id, case.id, old_status.value, to_status.value, ctx.actor,
        )
        logger.info(
            "Case %s status %s -> %s by %s",
            case.id, old_status.value, to_status.value, ctx.actor,
        )
        return case

    async def required_docs(self, org_id: str) -> list[str]:
        kinds = await self.store.get_required_docs(org_id)
        if kinds is None:
            return list(self.settings.default_required_docs)
        return kinds

    async def _check_required_docs(self, ctx: RequestContext, case: Case) -> None:
        required = await self.required_docs(ctx.org_id)
        if not required:
            return
        documents = await self.store.list_documents(ctx.org_id, case.id)
        # A superseded approval no longer counts
        approved = {
            d.kind for d in documents
            if d.status == "APPROVED" and d.superseded_by is None
        }
        missing = [kind for kind in required if kind not in approved]
        if missing:
            logger.info("Case %s cannot be submitted, missing %s", case.id, missing)
            raise DocsRequiredMissing(missing)

    # ── Assignment ───────────────────────────────────────────────────────────

    async def assign_case(self, ctx: RequestContext, case_id: str, assigned_to: str) -> Case:
        ctx.require(Resource.CASES, Action.ASSIGN)
        if not await self.store.is_member(ctx.org_id, assigned_to):
            logger.info("Assignee %s is not a member of org %s", assigned_to, ctx.org_id)
            raise AssigneeNotFound(assigned_to)
        case = await self._get_case_or_404(ctx, case_id)
        case.assigned_to = assigned_to
        await self.store.save_case(case)

        await self.store.append_event(CaseEvent(
            case_id=case.id,
            type="ASSIGNMENT",
            actor=ctx.actor,
            payload={"assigned_to": assigned_to},
        ))
        await self.audit.log_case_assigned(ctx.org_id, case.id, assigned_to, ctx.actor)
        return case

    # ── Documents ────────────────────────────────────────────────────────────

    async def register_document(
        self,
        ctx: RequestContext,
        case_id: str,
        *,
        kind: str,
        name: str,
        content_type: str,
        size: int = 0,
    ) -> CaseDocument:
        """
        Record a document for a case and supersede the previous live document
        of the same kind. The bytes themselves go to external storage under
        `storage_path`.
        """
        ctx.require(Resource.DOCUMENTS, Action.UPLOAD)

        if kind not in DOCUMENT_KINDS:
            raise InvalidCaseInput(f"Invalid document kind: {kind}. Valid: {list(DOCUMENT_KINDS)}")
        if content_type not in self.settings.document_types:
            raise UnsupportedDocumentType(f"Unsupported content type: {content_type}")
        max_bytes = self.settings.max_upload_size_mb * 1024 * 1024
        if size > max_bytes:
            raise DocumentTooLarge(
                f"Maximum size is {self.settings.max_upload_size_mb}MB"
            )

        case = await self._get_case_or_404(ctx, case_id)
        previous = [
            d for d in await self.store.list_documents(ctx.org_id, case.id)
            if d.kind == kind and d.superseded_by is None
        ]

        ext = name.rsplit(".", 1)[-1].lower() if "." in name else "bin"
        document = CaseDocument(
            case_id=case.id,
            org_id=ctx.org_id,
            kind=kind,
            filename=name,
            mime=content_type,
            size=size,
            uploaded_by=ctx.user_id,
        )
        document.storage_path = f"{ctx.org_id}/{case.id}/{document.id}.{ext}"
        await self.store.add_document(document)

        for prev in previous:
            await self.store.save_document(replace(prev, superseded_by=document.id))

        await self.store.append_event(CaseEvent(
            case_id=case.id,
            type="DOCUMENT_UPLOADED",
            actor=ctx.actor,
            payload={
                "document_id": document.id,
                "kind": kind,
                "supersedes": [p.id for p in previous],
            },
        ))
        return document

    async def review_document(
        self,
        ctx: RequestContext,
        case_id: str,
        document_id: str,
        decision: str,
    ) -> CaseDocument:
        action = _REVIEW_ACTIONS.get(decision)
        if action is None:
            raise InvalidCaseInput(
                f"Invalid review decision: {decision}. Valid: {sorted(_REVIEW_ACTIONS)}"
            )
        ctx.require(Resource.DOCUMENTS, action)

        document = await self.store.get_document(ctx.org_id, case_id, document_id)
        if document is None:
            raise CaseNotFound(f"Document {document_id} not found")

        document.status = decision
        document.reviewed_by = ctx.user_id
        await self.store.save_document(document)

        await self.store.append_event(CaseEvent(
            case_id=case_id,
            type="DOCUMENT_REVIEWED",
            actor=ctx.actor,
            payload={"document_id": document.id, "decision": decision},
        ))
        await self.audit.log_document_reviewed(ctx.org_id, document.id, decision, ctx.actor)
        return document

    async def list_documents(self, ctx: RequestContext, case_id: str) -> list[CaseDocument]:
        ctx.require(Resource.DOCUMENTS, Action.READ)
        case = await self._get_case_or_404(ctx, case_id)
        return await self.store.list_documents(ctx.org_id, case.id)

    # ── Events ───────────────────────────────────────────────────────────────

    async def list_events(self, ctx: RequestContext, case_id: str) -> list[CaseEvent]:
        ctx.require(Resource.CASES, Action.READ)
        case = await self._get_case_or_404(ctx, case_id)
        return await self.store.list_events(case.id)

    async def add_note(
        self,
        ctx: RequestContext,
        case_id: str,
        type: str,
        content: str,
    ) -> CaseEvent:
        """Append a NOTE or COMMENT to the case timeline. Any other type is a NOTE."""
        ctx.require(Resource.CASES, Action.READ)
        content = content.strip()
        if not content or len(content) > 1000:
            raise InvalidCaseInput("Note content must be 1-1000 characters")
        case = await self._get_case_or_404(ctx, case_id)

        event_type = "COMMENT" if (type or "").upper() == "COMMENT" else "NOTE"
        return await self.store.append_event(CaseEvent(
            case_id=case.id,
            type=event_type,
            actor=ctx.actor,
            payload={"content": content},
        ))
