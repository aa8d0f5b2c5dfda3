from typing import Literal

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    # === General ===
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # === Database ===
    database_url: str = Field(default="sqlite:///./sessiongate.db", validation_alias="DATABASE_URL")

    @field_validator("database_url", mode="before")
    @classmethod
    def normalize_pg_scheme(cls, v: str) -> str:
        # Render/Heroku sometimes provide 'postgres://'
        if v and v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql+psycopg://", 1)
        return v

    # === Sessions ===
    session_backend: Literal["memory", "database"] = Field(
        default="database", validation_alias="SESSION_BACKEND"
    )
    session_secret: str = Field(default=..., validation_alias="SESSION_SECRET")
    session_cookie_name: str = Field(default="sessionid", validation_alias="SESSION_COOKIE_NAME")
    session_ttl_seconds: int = Field(default=60 * 60 * 24 * 14, validation_alias="SESSION_TTL_SECONDS")

    @field_validator("session_ttl_seconds")
    @classmethod
    def clamp_ttl(cls, v: int) -> int:
        return max(v, 60)

    # === Cookies ===
    cookie_secure: bool = Field(default=False, validation_alias="COOKIE_SECURE")  # set True behind HTTPS
    cookie_samesite: Literal["lax", "strict", "none"] = Field(
        default="lax", validation_alias="COOKIE_SAMESITE"
    )

    @field_validator("cookie_samesite", mode="before")
    @classmethod
    def lower_samesite(cls, v: str) -> str:
        return v.strip().lower() if isinstance(v, str) else v

    # === CSRF ===
    # Header name must match what the client proxy sends.
    csrf_cookie_name: str = Field(default="XSRF-TOKEN", validation_alias="CSRF_COOKIE_NAME")
    csrf_header_name: str = Field(default="X-XSRF-TOKEN", validation_alias="CSRF_HEADER_NAME")

    # Where clients land after logout
    landing_route: str = Field(default="/", validation_alias="LANDING_ROUTE")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()
