from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.errors import AuthError
from app.core.security import InvalidToken, PasswordHasher, TokenIssuer
from app.db.session import get_db
from app.models.user import User
from app.repositories.users import UserRepository
from app.services.media import MediaStore
from app.services.sessions import SessionController

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_media_store(request: Request) -> MediaStore:
    return request.app.state.media_store


def get_session_controller(
    db: Session = Depends(get_db),
    tokens: TokenIssuer = Depends(get_token_issuer),
    hasher: PasswordHasher = Depends(get_password_hasher),
    media: MediaStore = Depends(get_media_store),
) -> SessionController:
    return SessionController(UserRepository(db), tokens, hasher, media)


def _access_token_from(request: Request) -> str | None:
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token
    header = request.headers.get("authorization") or ""
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


def _resolve_user(request: Request, db: Session, tokens: TokenIssuer) -> User:
    token = _access_token_from(request)
    if not token:
        raise AuthError("Unauthorized request", reason="Unauthorized")

    try:
        user_id = tokens.verify(token, "access")
    except InvalidToken:
        raise AuthError("Invalid access token", reason="InvalidToken")

    user = UserRepository(db).get_by_id(user_id)
    if not user:
        raise AuthError("Invalid access token", reason="InvalidToken")
    return user


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> User:
    return _resolve_user(request, db, tokens)


def get_optional_user(
    request: Request,
    db: Session = Depends(get_db),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> User | None:
    if not _access_token_from(request):
        return None
    try:
        return _resolve_user(request, db, tokens)
    except AuthError:
        return None
