"""
Audit Service

Append-only, hash-chained audit trail of every state change made through the
case workflow. Entries are immutable once written; `verify_chain_integrity`
walks the chain and recomputes each hash.
"""

import asyncio
import hashlib
import json
import logging

from casedesk.models import AuditLog

logger = logging.getLogger(__name__)


class AuditService:
    """Immutable, hash-chained audit trail."""

    def __init__(self):
        self._entries: list[AuditLog] = []
        self._lock = asyncio.Lock()

    def _calculate_hash(self, content: dict, previous_hash: str | None) -> str:
        """SHA-256 hash of entry contents + previous hash."""
        payload = {
            "content": content,
            "previous_hash": previous_hash or "",
        }
        raw = json.dumps(payload, sort_keys=True, default=str)
        return hashlib.sha256(raw.encode()).hexdigest()

    @staticmethod
    def _content(
        org_id: str,
        event_type: str,
        actor: str,
        action: str,
        resource_type: str | None,
        resource_id: str | None,
        details: dict,
    ) -> dict:
        return {
            "org_id": org_id,
            "event_type": event_type,
            "actor": actor,
            "action": action,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "details": details,
        }

    async def log_event(
        self,
        org_id: str,
        event_type: str,
        actor: str,
        action: str,
        resource_type: str | None = None,
        resource_id: str | None = None,
        details: dict | None = None,
    ) -> AuditLog:
        """
        Write an immutable audit entry.

        Args:
            org_id: tenant the change belongs to
            event_type: e.g. "case_created", "case_status_changed"
            actor: e.g. "MANAGER:5b0c..." (see RequestContext.actor)
            action: Human-readable description
            resource_type: "case", "document", ...
            resource_id: The ID of the affected resource
            details: Full event details as dict
        """
        entry_details = details or {}
        content = self._content(
            org_id, event_type, actor, action, resource_type, resource_id, entry_details,
        )

        async with self._lock:
            previous_hash = self._entries[-1].current_hash if self._entries else None
            entry = AuditLog(
                org_id=org_id,
                event_type=event_type,
                actor=actor,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                details=entry_details,
                previous_hash=previous_hash,
                current_hash=self._calculate_hash(content, previous_hash),
                id=len(self._entries) + 1,
            )
            self._entries.append(entry)

        logger.info("audit %s by %s: %s", event_type, actor, action)
        return entry

    async def log_case_created(self, org_id: str, case_id: str, company_id: str, actor: str) -> AuditLog:
        return await self.log_event(
            org_id=org_id,
            event_type="case_created",
            actor=actor,
            action=f"Case {case_id} created for company {company_id}",
            resource_type="case",
            resource_id=case_id,
            details={"company_id": company_id},
        )

    async def log_case_updated(
        self, org_id: str, case_id: str, old_status: str, new_status: str, actor: str,
    ) -> AuditLog:
        return await self.log_event(
            org_id=org_id,
            event_type="case_status_changed",
            actor=actor,
            action=f"Case {case_id} status: {old_status} → {new_status}",
            resource_type="case",
            resource_id=case_id,
            details={"old_status": old_status, "new_status": new_status},
        )

    async def log_case_assigned(
        self, org_id: str, case_id: str, assigned_to: str, actor: str,
    ) -> AuditLog:
        return await self.log_event(
            org_id=org_id,
            event_type="case_assigned",
            actor=actor,
            action=f"Case {case_id} assigned to {assigned_to}",
            resource_type="case",
            resource_id=case_id,
            details={"assigned_to": assigned_to},
        )

    async def log_document_reviewed(
        self, org_id: str, document_id: str, decision: str, actor: str,
    ) -> AuditLog:
        return await self.log_event(
            org_id=org_id,
            event_type="document_reviewed",
            actor=actor,
            action=f"Document {document_id} {decision.lower()}",
            resource_type="document",
            resource_id=document_id,
            details={"decision": decision},
        )

    def _entry_hash_ok(self, entry: AuditLog) -> bool:
        content = self._content(
            entry.org_id, entry.event_type, entry.actor, entry.action,
            entry.resource_type, entry.resource_id, entry.details,
        )
        return entry.current_hash == self._calculate_hash(content, entry.previous_hash)

    def verify_entries(self, entries: list[AuditLog]) -> bool:
        """Recompute the hash of each given entry against its own previous_hash."""
        return all(self._entry_hash_ok(e) for e in entries)

    async def verify_chain_integrity(self) -> dict:
        """Walk the full chain and verify each entry's hash."""
        entries = list(self._entries)

        for i, entry in enumerate(entries):
            expected_prev = entries[i - 1].current_hash if i > 0 else None
            if entry.previous_hash != expected_prev:
                return {
                    "valid": False,
                    "entries_checked": i + 1,
                    "first_invalid": entry.event_id,
                    "reason": "previous_hash mismatch",
                }

            if not self._entry_hash_ok(entry):
                return {
                    "valid": False,
                    "entries_checked": i + 1,
                    "first_invalid": entry.event_id,
                    "reason": "current_hash mismatch (data tampered)",
                }

        return {"valid": True, "entries_checked": len(entries), "first_invalid": None}

    async def get_entries(
        self,
        org_id: str,
        event_type: str | None = None,
        resource_type: str | None = None,
        resource_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AuditLog]:
        """Newest-first audit entries for one organization."""
        matches = [
            e for e in reversed(self._entries)
            if e.org_id == org_id
            and (event_type is None or e.event_type == event_type)
            and (resource_type is None or e.resource_type == resource_type)
            and (resource_id is None or e.resource_id == resource_id)
        ]
        return matches[offset:offset + limit]
