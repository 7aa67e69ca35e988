"""Tests for the hash-chained audit trail."""

from dataclasses import replace

import pytest

from casedesk.services.audit_service import AuditService
from tests.conftest import ORG_ID, OTHER_ORG_ID


@pytest.mark.asyncio
class TestAuditChain:
    async def test_entries_are_chained(self, audit: AuditService):
        first = await audit.log_case_created(ORG_ID, "case-1", "company-1", "OPERATOR:u1")
        second = await audit.log_case_updated(ORG_ID, "case-1", "NEW", "SCREENING", "MANAGER:u2")

        assert first.previous_hash is None
        assert second.previous_hash == first.current_hash
        assert (await audit.verify_chain_integrity())["valid"] is True

    async def test_tampering_is_detected(self, audit: AuditService):
        await audit.log_case_created(ORG_ID, "case-1", "company-1", "OPERATOR:u1")
        await audit.log_case_assigned(ORG_ID, "case-1", "u3", "MANAGER:u2")

        audit._entries[0] = replace(audit._entries[0], actor="ADMIN:intruder")

        result = await audit.verify_chain_integrity()
        assert result["valid"] is False
        assert result["entries_checked"] == 1
        assert "tampered" in result["reason"]

    async def test_entries_are_scoped_and_filtered(self, audit: AuditService):
        await audit.log_case_created(ORG_ID, "case-1", "company-1", "OPERATOR:u1")
        await audit.log_document_reviewed(ORG_ID, "doc-1", "APPROVED", "MANAGER:u2")
        await audit.log_case_created(OTHER_ORG_ID, "case-9", "company-9", "OPERATOR:u9")

        entries = await audit.get_entries(ORG_ID)
        assert [e.event_type for e in entries] == ["document_reviewed", "case_created"]

        docs = await audit.get_entries(ORG_ID, resource_type="document")
        assert [e.resource_id for e in docs] == ["doc-1"]
        assert docs[0].action == "Document doc-1 approved"

        assert await audit.get_entries(ORG_ID, limit=1, offset=1) == [entries[1]]

    async def test_verify_entries_checks_only_the_given_page(self, audit: AuditService):
        await audit.log_case_created(ORG_ID, "case-1", "company-1", "OPERATOR:u1")
        await audit.log_case_created(OTHER_ORG_ID, "case-9", "company-9", "OPERATOR:u9")

        page = await audit.get_entries(ORG_ID)
        assert audit.verify_entries(page) is True

        audit._entries[1] = replace(audit._entries[1], actor="ADMIN:intruder")
        assert audit.verify_entries(await audit.get_entries(ORG_ID)) is True
        assert audit.verify_entries(await audit.get_entries(OTHER_ORG_ID)) is False
        assert (await audit.verify_chain_integrity())["valid"] is False
