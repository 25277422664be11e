import logging

from app.concierge.core.error_catalog import AppError, ErrorCatalog
from app.concierge.core.security import create_user_access_token, verify_secret
from app.concierge.repos.users import UserRepository

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db):
        self.repo = UserRepository(db)

    def login(self, identifier: str, password: str):
        user = self.repo.get_by_username_or_email(identifier.strip()) if identifier else None
        if user is None or not verify_secret(password, user.hashed_password):
            logger.warning("login_failed", extra={"identifier": identifier})
            raise AppError(ErrorCatalog.INVALID_CREDENTIALS)
        if not user.is_active:
            raise AppError(ErrorCatalog.USER_INACTIVE)
        return user, create_user_access_token(user)
