"""
Credential store.

`UserStore` is what the session controller depends on; `UserRepository`
is the SQLAlchemy implementation used by the API.
"""

import logging
import uuid
from typing import Any, Protocol

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ConflictError
from app.models.user import User

logger = logging.getLogger("app.users")


class UserStore(Protocol):
    def get_by_id(self, user_id: str) -> Any | None: ...

    def find_by_email_or_user_name(
        self, email: str | None, user_name: str | None
    ) -> Any | None: ...

    def find_by_email(self, email: str) -> Any | None: ...

    def create(
        self,
        *,
        full_name: str,
        email: str,
        user_name: str,
        password_hash: str,
        avatar: str,
        cover_image: str,
    ) -> Any: ...

    def update_fields(self, user_id: str, **fields: Any) -> Any | None: ...

    def set_refresh_token(self, user_id: str, token: str | None) -> None: ...

    def rotate_refresh_token(self, user_id: str, expected: str, new: str) -> bool:
        """Swap the stored token to ``new`` only if it still equals ``expected``."""
        ...


def as_uuid(value: Any) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: str) -> User | None:
        uid = as_uuid(user_id)
        if uid is None:
            return None
        return self.db.get(User, uid, populate_existing=True)

    def find_by_email_or_user_name(
        self, email: str | None, user_name: str | None
    ) -> User | None:
        clauses = []
        if email:
            clauses.append(User.email == email)
        if user_name:
            clauses.append(User.user_name == user_name)
        if not clauses:
            return None
        return self.db.scalars(select(User).where(or_(*clauses)).limit(1)).first()

    def find_by_email(self, email: str) -> User | None:
        return self.db.scalars(select(User).where(User.email == email)).first()

    def create(
        self,
        *,
        full_name: str,
        email: str,
        user_name: str,
        password_hash: str,
        avatar: str,
        cover_image: str = "",
    ) -> User:
        user = User(
            full_name=full_name,
            email=email,
            user_name=user_name,
            password_hash=password_hash,
            avatar=avatar,
            cover_image=cover_image,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # lost a race with a concurrent registration
            self.db.rollback()
            raise ConflictError("User with email or username already exists")
        self.db.refresh(user)
        return user

    def update_fields(self, user_id: str, **fields: Any) -> User | None:
        user = self.get_by_id(user_id)
        if not user:
            return None
        for name, value in fields.items():
            setattr(user, name, value)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Email already in use")
        self.db.refresh(user)
        return user

    def set_refresh_token(self, user_id: str, token: str | None) -> None:
        uid = as_uuid(user_id)
        if uid is None:
            return
        self.db.execute(
            update(User).where(User.id == uid).values(refresh_token=token)
        )
        self.db.commit()

    def rotate_refresh_token(self, user_id: str, expected: str, new: str) -> bool:
        uid = as_uuid(user_id)
        if uid is None or not expected:
            return False
        # compare-and-swap in one statement; concurrent callers can't both match
        result = self.db.execute(
            update(User)
            .where(User.id == uid, User.refresh_token == expected)
            .values(refresh_token=new)
        )
        self.db.commit()
        swapped = result.rowcount == 1
        if not swapped:
            logger.info("refresh token swap lost user_id=%s", uid)
        return swapped
