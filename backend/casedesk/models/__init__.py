from casedesk.models.case import (
    CASE_PRIORITIES,
    DOCUMENT_KINDS,
    Case,
    CaseDocument,
    CaseEvent,
)
from casedesk.models.audit import AuditLog

__all__ = [
    "CASE_PRIORITIES", "DOCUMENT_KINDS",
    "Case", "CaseDocument", "CaseEvent", "AuditLog",
]
