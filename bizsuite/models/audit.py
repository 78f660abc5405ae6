from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class AuditEntry:
    id: UUID
    actor_id: str
    action: str  # subscription_activated|tenant_onboarded|role_changed|...
    entity_type: str
    entity_id: str
    org_id: UUID | None
    created_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def record(
        *,
        actor_id: str,
        action: str,
        entity_type: str,
        entity_id: str,
        org_id: UUID | None,
        metadata: dict[str, Any] | None = None,
    ) -> AuditEntry:
        return AuditEntry(
            id=uuid4(),
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            org_id=org_id,
            created_at=datetime.now(UTC),
            metadata=metadata or {},
        )
