"""
Application configuration using pydantic-settings.
"""
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "msdata"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8080

    # Command side (writes). Small pool, full transactional control.
    command_database_url: str = "sqlite+aiosqlite:///./msdata.db"
    command_pool_size: int = 5
    command_max_overflow: int = 0

    # Query side (reads). Defaults to the command database; point it at a
    # replica to split the stores.
    query_database_url: Optional[str] = None
    query_pool_size: int = 10
    query_max_overflow: int = 5

    pool_timeout_seconds: float = 30.0
    create_schema: bool = True

    # Paging
    default_page_size: int = 20
    max_page_size: int = 100

    # Request handling
    request_timeout_seconds: float = 10.0
    limit_concurrency: Optional[int] = None
    timeout_keep_alive: int = 5

    # Response formatting
    default_timezone: str = "Europe/Madrid"
    default_locale: str = "es-ES"

    # OAuth2 resource server (JWT validation)
    jwt_secret: Optional[str] = None
    jwt_public_key: Optional[str] = None
    jwt_jwks_url: Optional[str] = None
    jwt_algorithms: list[str] = ["RS256"]
    jwt_issuer: Optional[str] = None
    jwt_audience: Optional[str] = None
    jwt_leeway_seconds: int = 30
    jwt_authorities_claim: str = "groups"
    jwt_authority_prefix: str = "ROLE_"
    # Empty means any authenticated caller may write
    write_roles: list[str] = []

    public_paths: list[str] = [
        "/actuator/health",
        "/actuator/info",
        "/docs",
        "/redoc",
        "/openapi.json",
    ]
    public_prefixes: list[str] = ["/api/public/", "/docs/"]

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    @field_validator("default_timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value

    @property
    def effective_query_database_url(self) -> str:
        """Query side URL, falling back to the command side."""
        return self.query_database_url or self.command_database_url

    @property
    def jwt_configured(self) -> bool:
        return bool(self.jwt_secret or self.jwt_public_key or self.jwt_jwks_url)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
