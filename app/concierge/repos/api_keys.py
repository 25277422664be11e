from sqlalchemy import select

from app.concierge.db.models import ApiKey
from app.concierge.repos.ids import parse_uuid


class ApiKeyRepository:
    def __init__(self, db):
        self.db = db

    def list_active(self) -> list[ApiKey]:
        return list(self.db.execute(select(ApiKey).where(ApiKey.is_active.is_(True))).scalars().all())

    def list_all(self) -> list[ApiKey]:
        return list(self.db.execute(select(ApiKey).order_by(ApiKey.created_at.desc())).scalars().all())

    def get_by_id(self, key_id) -> ApiKey | None:
        parsed = parse_uuid(key_id)
        if parsed is None:
            return None
        return self.db.get(ApiKey, parsed)

    def create(self, api_key: ApiKey) -> ApiKey:
        self.db.add(api_key)
        self.db.commit()
        self.db.refresh(api_key)
        return api_key

    def update(self, api_key: ApiKey) -> ApiKey:
        self.db.add(api_key)
        self.db.commit()
        self.db.refresh(api_key)
        return api_key
