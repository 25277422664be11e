from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.concierge.db.models import IdempotencyRecord


class IdempotencyRepository:
    def __init__(self, db):
        self.db = db

    def find(self, *, scope: str, endpoint: str, method: str, idempotency_key: str) -> IdempotencyRecord | None:
        return (
            self.db.execute(
                select(IdempotencyRecord).where(
                    IdempotencyRecord.scope == scope,
                    IdempotencyRecord.endpoint == endpoint,
                    IdempotencyRecord.method == method,
                    IdempotencyRecord.idempotency_key == idempotency_key,
                )
            )
            .scalars()
            .first()
        )

    def claim(self, record: IdempotencyRecord) -> bool:
        """Insert ``record``; False when a concurrent request already holds the key."""
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return False
        return True

    def save(self, record: IdempotencyRecord) -> None:
        self.db.add(record)
        self.db.commit()
