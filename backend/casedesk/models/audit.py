from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import uuid4


@dataclass(frozen=True)
class AuditLog:
    org_id: str
    event_type: str
    actor: str
    action: str
    resource_type: str | None
    resource_id: str | None
    details: dict
    previous_hash: str | None
    current_hash: str
    id: int = 0
    event_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
