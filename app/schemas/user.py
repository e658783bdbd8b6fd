from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class LoginIn(CamelModel):
    email: str | None = None
    user_name: str | None = None
    password: str | None = None


class RefreshIn(CamelModel):
    refresh_token: str | None = None


class ChangePasswordIn(CamelModel):
    old_password: str | None = None
    new_password: str | None = None


class UpdateAccountIn(CamelModel):
    full_name: str | None = None
    email: str | None = None


class UserOut(CamelModel):
    """Sanitized user: never carries the password hash or refresh token."""

    id: str
    user_name: str
    email: str
    full_name: str
    avatar: str
    cover_image: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def dump(cls, user) -> dict:
        return cls(
            id=str(user.id),
            user_name=user.user_name,
            email=user.email,
            full_name=user.full_name,
            avatar=user.avatar,
            cover_image=user.cover_image or "",
            created_at=getattr(user, "created_at", None),
            updated_at=getattr(user, "updated_at", None),
        ).model_dump(by_alias=True, mode="json")
