import logging

from sqlalchemy import select

from app.concierge.core.config import settings
from app.concierge.core.security import hash_secret
from app.concierge.db.models import User

logger = logging.getLogger(__name__)


def _get_or_create_admin(db) -> User:
    user = db.execute(select(User).where(User.username == settings.ADMIN_USERNAME)).scalars().first()
    if user:
        return user
    user = User(
        username=settings.ADMIN_USERNAME,
        email=settings.ADMIN_EMAIL,
        hashed_password=hash_secret(settings.ADMIN_PASSWORD),
        role="ADMIN",
        is_active=True,
    )
    db.add(user)
    logger.info("admin_user_seeded", extra={"username": settings.ADMIN_USERNAME})
    return user


def run_seed(db) -> User:
    user = _get_or_create_admin(db)
    db.commit()
    return user


if __name__ == "__main__":
    from app.concierge.core.logging import configure_logging
    from app.concierge.db.session import session_scope

    configure_logging()
    with session_scope() as session:
        run_seed(session)
