from sqlalchemy import func, or_, select

from app.concierge.db.models import User
from app.concierge.repos.ids import parse_uuid


class UserRepository:
    def __init__(self, db):
        self.db = db

    def get_by_id(self, user_id: str):
        parsed = parse_uuid(user_id)
        if parsed is None:
            return None
        return self.db.get(User, parsed)

    def get_by_username_or_email(self, identifier: str):
        stmt = select(User).where((User.username == identifier) | (User.email == identifier))
        return self.db.execute(stmt).scalars().first()

    def find_conflict(self, username: str | None, email: str | None, exclude_id=None):
        conditions = []
        if username is not None:
            conditions.append(User.username == username)
        if email is not None:
            conditions.append(func.lower(User.email) == email.lower())
        if not conditions:
            return None
        stmt = select(User).where(or_(*conditions))
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        return self.db.execute(stmt).scalars().first()

    def list_all(self) -> list[User]:
        return list(self.db.execute(select(User).order_by(User.created_at, User.username)).scalars().all())

    def create(self, user: User) -> User:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def update(self, user: User) -> User:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def delete(self, user: User) -> None:
        self.db.delete(user)
        self.db.commit()
