from __future__ import annotations

"""Audit event storage and hashing utilities."""

import hashlib
import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from repobrief.metadata.schema import audit_events


class AuditStoreError(RuntimeError):
    """Raised when audit storage fails."""
    pass


@dataclass(frozen=True)
class AuditEvent:
    """Audit event payload captured during request processing."""
    event_type: str
    request_id: str
    actor: str
    status: str
    project_id: str | None = None
    detail: dict[str, Any] | None = None


class AuditStore:
    """Persist audit events to the shared SQL database."""
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def record_event(self, event: AuditEvent) -> None:
        """Insert a new audit event row."""
        payload = {
            "id": str(uuid.uuid4()),
            "request_id": event.request_id,
            "event_type": event.event_type,
            "project_id": event.project_id,
            "actor": event.actor,
            "status": event.status,
            "detail": json.dumps(event.detail or {}, ensure_ascii=True, default=str),
            "created_at": datetime.now(timezone.utc),
        }
        try:
            with self._engine.begin() as conn:
                conn.execute(audit_events.insert().values(**payload))
        except SQLAlchemyError as exc:
            raise AuditStoreError(f"Failed to record audit event: {type(exc).__name__}") from exc


def hash_actor(api_key: str | None) -> str:
    """Hash an API key into a short actor token for audit logs."""
    if not api_key:
        return "anonymous"
    digest = hashlib.sha256(api_key.encode("utf-8")).hexdigest()
    return digest[:12]
