import logging
from dataclasses import dataclass
from datetime import datetime

from app.concierge.db.models import AuditEvent
from app.concierge.repos.audit import AuditRepository

logger = logging.getLogger(__name__)


@dataclass
class AuditEventPayload:
    actor: str
    action: str
    entity_type: str
    entity_id: str | None
    trace_id: str | None
    result: str = "success"
    metadata: dict | None = None


class AuditService:
    """Best-effort audit logging.

    Failures are logged and swallowed so they never break the request.
    """

    def __init__(self, db):
        self.repo = AuditRepository(db)

    def record_event(self, payload: AuditEventPayload) -> None:
        try:
            self.repo.create(
                AuditEvent(
                    actor=payload.actor,
                    action=payload.action,
                    entity_type=payload.entity_type,
                    entity_id=payload.entity_id,
                    trace_id=payload.trace_id,
                    event_metadata=dict(payload.metadata or {}),
                    result=payload.result,
                    created_at=datetime.utcnow(),
                )
            )
        except Exception:
            self.repo.db.rollback()
            logger.exception(
                "Failed to write audit event",
                extra={"action": payload.action, "trace_id": payload.trace_id, "entity_id": payload.entity_id},
            )
