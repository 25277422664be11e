from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime

from app.concierge.core.error_catalog import AppError, ErrorCatalog
from app.concierge.core.security import hash_secret, verify_secret
from app.concierge.db.models import ApiKey
from app.concierge.repos.api_keys import ApiKeyRepository

logger = logging.getLogger(__name__)

API_KEY_PREFIX = "concierge_"


@dataclass(frozen=True)
class IssuedApiKey:
    record: ApiKey
    plaintext: str


def generate_api_key() -> str:
    return f"{API_KEY_PREFIX}{secrets.token_hex(32)}"


class ApiKeyService:
    def __init__(self, db):
        self.db = db
        self.repo = ApiKeyRepository(db)

    def authenticate(self, presented: str | None) -> ApiKey:
        if not presented or not presented.strip():
            raise AppError(ErrorCatalog.API_KEY_MISSING)
        presented = presented.strip()
        try:
            candidates = self.repo.list_active()
        except Exception as exc:
            logger.exception("API key lookup failed")
            raise AppError(ErrorCatalog.API_KEY_LOOKUP_FAILED) from exc

        for candidate in candidates:
            if verify_secret(presented, candidate.key_hash):
                self._touch(candidate)
                return candidate
        logger.warning("api_key_rejected")
        raise AppError(ErrorCatalog.INVALID_API_KEY)

    def _touch(self, api_key: ApiKey) -> None:
        try:
            api_key.last_used_at = datetime.utcnow()
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Failed to refresh api key last_used_at", extra={"api_key_id": str(api_key.id)})

    def issue(self, description: str) -> IssuedApiKey:
        plaintext = generate_api_key()
        record = self.repo.create(
            ApiKey(key_hash=hash_secret(plaintext), description=description.strip(), is_active=True)
        )
        return IssuedApiKey(record=record, plaintext=plaintext)

    def get(self, key_id) -> ApiKey:
        api_key = self.repo.get_by_id(key_id)
        if api_key is None:
            raise AppError(ErrorCatalog.API_KEY_NOT_FOUND)
        return api_key

    def set_active(self, key_id, is_active: bool) -> ApiKey:
        api_key = self.get(key_id)
        api_key.is_active = is_active
        return self.repo.update(api_key)

    def revoke(self, key_id) -> ApiKey:
        return self.set_active(key_id, False)
