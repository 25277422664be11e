from __future__ import annotations

import logging

from app.concierge.core.error_catalog import AppError, ErrorCatalog
from app.concierge.core.security import hash_secret
from app.concierge.db.models import User
from app.concierge.repos.users import UserRepository
from app.concierge.schemas.users import UserCreateRequest, UserUpdateRequest

logger = logging.getLogger(__name__)


class UserAdminService:
    """Dashboard account management. Every account is an administrator."""

    def __init__(self, db):
        self.db = db
        self.repo = UserRepository(db)

    def get(self, user_id) -> User:
        user = self.repo.get_by_id(user_id)
        if user is None:
            raise AppError(ErrorCatalog.USER_NOT_FOUND)
        return user

    def _ensure_unique(self, username: str | None, email: str | None, exclude_id=None) -> None:
        if self.repo.find_conflict(username, email, exclude_id=exclude_id) is not None:
            raise AppError(ErrorCatalog.USER_CONFLICT)

    def create(self, payload: UserCreateRequest) -> User:
        email = str(payload.email).lower()
        self._ensure_unique(payload.username, email)
        user = self.repo.create(
            User(
                username=payload.username,
                email=email,
                hashed_password=hash_secret(payload.password),
                role="ADMIN",
                is_active=True,
            )
        )
        logger.info("user_created", extra={"user_id": str(user.id)})
        return user

    def edit(self, user_id, payload: UserUpdateRequest, *, actor: User) -> User:
        user = self.get(user_id)
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "At least one field must be provided"})
        if changes.get("is_active") is False and user.id == actor.id:
            raise AppError(ErrorCatalog.CANNOT_DELETE_SELF, details={"message": "You cannot deactivate yourself"})
        email = str(changes["email"]).lower() if "email" in changes else None
        self._ensure_unique(changes.get("username"), email, exclude_id=user.id)
        if "username" in changes:
            user.username = changes["username"]
        if email is not None:
            user.email = email
        if "password" in changes:
            user.hashed_password = hash_secret(changes["password"])
        if "is_active" in changes:
            user.is_active = changes["is_active"]
        return self.repo.update(user)

    def delete(self, user_id, *, actor: User) -> str:
        """Delete the account and return its username."""
        user = self.get(user_id)
        if user.id == actor.id:
            raise AppError(ErrorCatalog.CANNOT_DELETE_SELF)
        username = user.username
        self.repo.delete(user)
        logger.info("user_deleted", extra={"user_id": str(user_id)})
        return username
