"""
Session controller: registration, login, logout, refresh and account edits.

A user session moves Anonymous -> Authenticated (login) -> Anonymous
(logout). While authenticated, a refresh swaps the token pair and stays
Authenticated. The user record holds exactly one live refresh token; any
older token is rejected as expired-or-reused, even if its own signature
and expiry are still fine.

Nothing here knows about HTTP; routers translate results into cookies
and envelopes.
"""

import logging

from app.core.errors import (
    AuthError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from app.core.security import InvalidToken, PasswordHasher, TokenIssuer, TokenPair
from app.repositories.users import UserStore
from app.services.media import MediaStore, Upload

logger = logging.getLogger("app.sessions")


def _clean(value: str | None) -> str:
    return (value or "").strip()


def normalize_email(email: str | None) -> str:
    return _clean(email).lower()


def normalize_user_name(user_name: str | None) -> str:
    return _clean(user_name).lower()


class SessionController:
    def __init__(
        self,
        store: UserStore,
        tokens: TokenIssuer,
        hasher: PasswordHasher,
        media: MediaStore,
    ):
        self.store = store
        self.tokens = tokens
        self.hasher = hasher
        self.media = media

    def register(
        self,
        full_name: str | None,
        email: str | None,
        user_name: str | None,
        password: str | None,
        avatar: Upload | None,
        cover_image: Upload | None = None,
    ):
        if any(not _clean(v) for v in (full_name, email, user_name, password)):
            raise ValidationError("All fields are required")

        email = normalize_email(email)
        user_name = normalize_user_name(user_name)

        if self.store.find_by_email_or_user_name(email, user_name):
            raise ConflictError("User with email or username already exists")

        if avatar is None:
            raise ValidationError("Avatar file is required")

        saved: list[str] = []
        try:
            avatar_url = self.media.save(avatar)
            saved.append(avatar_url)
            cover_url = ""
            if cover_image is not None:
                cover_url = self.media.save(cover_image)
                saved.append(cover_url)

            created = self.store.create(
                full_name=_clean(full_name),
                email=email,
                user_name=user_name,
                password_hash=self.hasher.hash(password),
                avatar=avatar_url,
                cover_image=cover_url,
            )
        except Exception:
            # a rejected registration keeps no files
            for url in saved:
                self.media.delete(url)
            raise

        user = self.store.get_by_id(str(created.id))
        if not user:
            raise InternalError("Something went wrong while registering the user")

        logger.info("registered user_id=%s user_name=%s", user.id, user.user_name)
        return user

    def _issue_and_store(self, user) -> TokenPair:
        pair = self.tokens.issue(user)
        self.store.set_refresh_token(str(user.id), pair.refresh_token)
        return pair

    def login(
        self,
        password: str | None,
        email: str | None = None,
        user_name: str | None = None,
    ):
        email = normalize_email(email)
        user_name = normalize_user_name(user_name)
        if not (email or user_name):
            raise ValidationError("userName or email is required")
        if not password:
            raise ValidationError("Password is required")

        user = self.store.find_by_email_or_user_name(email or None, user_name or None)
        if not user:
            raise NotFoundError("User does not exist")

        if not self.hasher.verify(password, user.password_hash):
            logger.info("login rejected user_id=%s", user.id)
            raise AuthError("Password is not correct", reason="InvalidCredentials")

        pair = self._issue_and_store(user)
        logger.info("login user_id=%s", user.id)
        return user, pair

    def logout(self, user_id: str) -> None:
        self.store.set_refresh_token(str(user_id), None)
        logger.info("logout user_id=%s", user_id)

    def refresh(self, incoming: str | None) -> TokenPair:
        if not incoming:
            raise AuthError("Unauthorized request", reason="Unauthorized")

        try:
            user_id = self.tokens.verify(incoming, "refresh")
        except InvalidToken as exc:
            logger.warning("refresh rejected reason=InvalidToken detail=%s", exc)
            raise AuthError("Invalid refresh token", reason="InvalidToken") from exc

        user = self.store.get_by_id(user_id)
        if not user:
            logger.warning("refresh rejected reason=InvalidToken user_id=%s", user_id)
            raise AuthError("Invalid refresh token", reason="InvalidToken")

        if incoming != user.refresh_token:
            logger.warning(
                "refresh rejected reason=TokenExpiredOrReused user_id=%s", user_id
            )
            raise AuthError(
                "Refresh token is expired or used", reason="TokenExpiredOrReused"
            )

        pair = self.tokens.issue(user)
        if not self.store.rotate_refresh_token(user_id, incoming, pair.refresh_token):
            logger.warning(
                "refresh rejected reason=TokenExpiredOrReused user_id=%s (concurrent)",
                user_id,
            )
            raise AuthError(
                "Refresh token is expired or used", reason="TokenExpiredOrReused"
            )

        logger.info("refreshed user_id=%s", user_id)
        return pair

    def change_password(
        self, user_id: str, old_password: str | None, new_password: str | None
    ) -> None:
        if not new_password or not new_password.strip():
            raise ValidationError("New password is required")

        user = self.store.get_by_id(str(user_id))
        if not user:
            raise NotFoundError("User does not exist")

        if not self.hasher.verify(old_password or "", user.password_hash):
            raise AuthError("Invalid old password", reason="InvalidCredentials")

        # a new password ends every refresh session
        self.store.update_fields(
            str(user_id),
            password_hash=self.hasher.hash(new_password),
            refresh_token=None,
        )
        logger.info("password changed user_id=%s", user_id)

    def update_account(self, user_id: str, full_name: str | None, email: str | None):
        if not _clean(full_name) or not _clean(email):
            raise ValidationError("All fields are required")

        email = normalize_email(email)
        other = self.store.find_by_email(email)
        if other and str(other.id) != str(user_id):
            raise ConflictError("Email already in use")

        user = self.store.update_fields(
            str(user_id), full_name=_clean(full_name), email=email
        )
        if not user:
            raise NotFoundError("User does not exist")
        return user

    def _replace_image(self, user_id: str, field: str, upload: Upload | None, label: str):
        if upload is None:
            raise ValidationError(f"{label} file is missing")
        url = self.media.save(upload)
        user = self.store.update_fields(str(user_id), **{field: url})
        if not user:
            raise NotFoundError("User does not exist")
        logger.info("updated %s user_id=%s", field, user_id)
        return user

    def update_avatar(self, user_id: str, upload: Upload | None):
        return self._replace_image(user_id, "avatar", upload, "Avatar")

    def update_cover_image(self, user_id: str, upload: Upload | None):
        return self._replace_image(user_id, "cover_image", upload, "Cover image")
