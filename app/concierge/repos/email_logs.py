from sqlalchemy import select

from app.concierge.db.models import EmailLog
from app.concierge.repos.ids import parse_uuid


class EmailLogRepository:
    def __init__(self, db):
        self.db = db

    def get_by_id(self, log_id) -> EmailLog | None:
        parsed = parse_uuid(log_id)
        if parsed is None:
            return None
        return self.db.get(EmailLog, parsed)

    def add_all(self, logs: list[EmailLog]) -> None:
        self.db.add_all(logs)
        self.db.commit()
