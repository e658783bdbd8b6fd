import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Literal

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import Settings

ALGO = "HS256"

TokenKind = Literal["access", "refresh"]


class ConfigurationError(RuntimeError):
    """Signing keys are missing; nothing can be issued until config is fixed."""


class InvalidToken(Exception):
    """Bad signature, expired, wrong kind or malformed payload."""


class PasswordHasher:
    def __init__(self, rounds: int = 12):
        self._ctx = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordHasher":
        return cls(rounds=settings.BCRYPT_ROUNDS)

    def hash(self, password: str) -> str:
        return self._ctx.hash(password)

    def verify(self, password: str, password_hash: str | None) -> bool:
        if not password or not password_hash:
            return False
        return self._ctx.verify(password, password_hash)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def _now() -> datetime:
    return datetime.now(timezone.utc)


def new_jti() -> str:
    return secrets.token_hex(16)  # 32 chars


class TokenIssuer:
    """
    Mints and checks the two JWT kinds.

    Access and refresh tokens are signed with different secrets, so a leaked
    access key can't be used to forge refresh tokens (and vice versa).
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        issuer: str,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
    ):
        if not access_secret or not refresh_secret:
            raise ConfigurationError("token signing secrets are not configured")
        self._secrets: dict[str, str] = {
            "access": access_secret,
            "refresh": refresh_secret,
        }
        self.issuer = issuer
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(
            access_secret=settings.ACCESS_TOKEN_SECRET,
            refresh_secret=settings.REFRESH_TOKEN_SECRET,
            issuer=settings.JWT_ISSUER,
            access_ttl=timedelta(minutes=settings.ACCESS_TTL_MIN),
            refresh_ttl=timedelta(days=settings.REFRESH_TTL_DAYS),
        )

    def make_access_token(self, user) -> str:
        now = _now()
        payload: dict[str, Any] = {
            "iss": self.issuer,
            "sub": str(user.id),
            "type": "access",
            "email": user.email,
            "userName": user.user_name,
            "fullName": user.full_name,
            "exp": now + self.access_ttl,
            "iat": now,
        }
        return jwt.encode(payload, self._secrets["access"], algorithm=ALGO)

    def make_refresh_token(self, user_id: str) -> str:
        now = _now()
        payload: dict[str, Any] = {
            "iss": self.issuer,
            "sub": str(user_id),
            "type": "refresh",
            "jti": new_jti(),
            "exp": now + self.refresh_ttl,
            "iat": now,
        }
        return jwt.encode(payload, self._secrets["refresh"], algorithm=ALGO)

    def issue(self, user) -> TokenPair:
        return TokenPair(
            access_token=self.make_access_token(user),
            refresh_token=self.make_refresh_token(str(user.id)),
        )

    def verify(self, token: str, kind: TokenKind) -> str:
        """Return the user id carried by ``token`` or raise InvalidToken."""
        if kind not in self._secrets:
            raise ValueError(f"unknown token kind: {kind!r}")
        try:
            payload = jwt.decode(
                token, self._secrets[kind], algorithms=[ALGO], issuer=self.issuer
            )
        except JWTError as exc:
            raise InvalidToken(str(exc)) from exc

        if payload.get("type") != kind:
            raise InvalidToken(f"expected {kind} token")

        user_id = payload.get("sub")
        if not user_id:
            raise InvalidToken("token has no subject")
        return str(user_id)
