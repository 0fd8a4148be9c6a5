"""User store backed by SQLAlchemy."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from greeting_api.db.models import User
from greeting_api.db.session import get_session


class DuplicateEmailError(Exception):
    """The e-mail is already taken (unique constraint hit)."""


@dataclass
class UserRecord:
    """Detached copy of a user row."""

    id: int
    email: str
    first_name: str
    last_name: str
    password_hash: str

    @classmethod
    def from_entity(cls, user: User) -> "UserRecord":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name or "",
            last_name=user.last_name or "",
            password_hash=user.password_hash,
        )


class UserRepository(Protocol):
    def get_by_id(self, user_id: int) -> Optional[UserRecord]: ...

    def get_by_email(self, email: str) -> Optional[UserRecord]: ...

    def insert(self, email: str, password_hash: str, first_name: str = "", last_name: str = "") -> UserRecord: ...

    def update_password(self, email: str, password_hash: str) -> bool: ...

    def delete(self, user_id: int) -> bool: ...


class SQLUserRepository:
    """CRUD helpers wrapping the SQLAlchemy session."""

    def get_by_id(self, user_id: int) -> Optional[UserRecord]:
        with get_session() as session:
            user = session.get(User, user_id)
            return UserRecord.from_entity(user) if user else None

    def get_by_email(self, email: str) -> Optional[UserRecord]:
        with get_session() as session:
            stmt = select(User).where(User.email == email)
            user = session.execute(stmt).scalar_one_or_none()
            return UserRecord.from_entity(user) if user else None

    def insert(self, email: str, password_hash: str, first_name: str = "", last_name: str = "") -> UserRecord:
        now = datetime.now(timezone.utc)
        with get_session() as session:
            user = User(
                email=email,
                password_hash=password_hash,
                first_name=first_name,
                last_name=last_name,
                created_at=now,
                updated_at=now,
            )
            session.add(user)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateEmailError(email) from exc
            session.refresh(user)
            return UserRecord.from_entity(user)

    def update_password(self, email: str, password_hash: str) -> bool:
        with get_session() as session:
            stmt = (
                update(User)
                .where(User.email == email)
                .values(password_hash=password_hash, updated_at=datetime.now(timezone.utc))
            )
            result = session.execute(stmt)
            session.commit()
            return result.rowcount > 0

    def delete(self, user_id: int) -> bool:
        with get_session() as session:
            result = session.execute(delete(User).where(User.id == user_id))
            session.commit()
            return result.rowcount > 0
