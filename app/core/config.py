from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    DATABASE_URL: str

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # one key per token kind
    ACCESS_TOKEN_SECRET: str
    REFRESH_TOKEN_SECRET: str
    JWT_ISSUER: str = "vidtube"

    ACCESS_TTL_MIN: int = 60
    REFRESH_TTL_DAYS: int = 10

    BCRYPT_ROUNDS: int = 12

    COOKIE_DOMAIN: str | None = None
    COOKIE_SECURE: bool = True
    COOKIE_SAMESITE: str = "lax"

    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    MEDIA_ROOT: str = "public/media"
    MEDIA_BASE_URL: str = "/media"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    @model_validator(mode="after")
    def _check_secrets_and_cookies(self) -> "Settings":
        if self.ACCESS_TOKEN_SECRET and (
            self.ACCESS_TOKEN_SECRET == self.REFRESH_TOKEN_SECRET
        ):
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ")
        if self.is_prod and not self.COOKIE_SECURE:
            raise ValueError("COOKIE_SECURE can not be disabled when ENV=prod")
        return self

    @property
    def is_prod(self) -> bool:
        return self.ENV.lower() == "prod"


@lru_cache
def get_settings() -> Settings:
    return Settings()
