from sqlalchemy import select

from app.concierge.db.models import AuditEvent


class AuditRepository:
    def __init__(self, db):
        self.db = db

    def create(self, event: AuditEvent) -> AuditEvent:
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)
        return event

    def list_for_entity(self, entity_id: str) -> list[AuditEvent]:
        return list(
            self.db.execute(
                select(AuditEvent).where(AuditEvent.entity_id == entity_id).order_by(AuditEvent.created_at.asc())
            )
            .scalars()
            .all()
        )
