from datetime import datetime

from app.concierge.db.models import AppSetting


class SettingsRepository:
    def __init__(self, db):
        self.db = db

    def get(self, key: str) -> AppSetting | None:
        return self.db.get(AppSetting, key)

    def upsert(self, key: str, value: str) -> AppSetting:
        setting = self.get(key)
        if setting is None:
            setting = AppSetting(key=key, value=value)
            self.db.add(setting)
        else:
            setting.value = value
            setting.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(setting)
        return setting
