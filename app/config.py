from typing import List, Optional
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ── Development defaults that must be overridden outside development ──
_DEV_PLATFORM_DOMAIN = "sitebuilder.local"
_DEV_APP_ORIGIN = "http://localhost:3000"


def _split_csv(value: str) -> List[str]:
    return [item.strip().lower() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    APP_NAME: str = "PageRoute SEO"
    APP_ENV: str = "development"
    API_V1_STR: str = "/api/v1"
    APP_VERSION: str = "1.0.0"

    # CORS
    BACKEND_CORS_ORIGINS: str = ""

    # Database
    DATABASE_URL: Optional[str] = None
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "pageroute"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800         # 30 minutes
    DB_ECHO: bool = False
    SLOW_QUERY_THRESHOLD_MS: int = 500

    # Redis (resolution cache)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_CACHE_DB: int = 3
    RESOLUTION_CACHE_ENABLED: bool = False
    RESOLUTION_CACHE_TTL: int = 60      # seconds
    RESOLUTION_CACHE_TIMEOUT: float = 0.25

    # Platform host family
    PLATFORM_DOMAIN: str = _DEV_PLATFORM_DOMAIN
    RESERVED_SUBDOMAINS: str = "www,app"
    PLATFORM_HOST_ALIASES: str = "localhost,127.0.0.1"
    SYSTEM_HOSTS: str = f"app.{_DEV_PLATFORM_DOMAIN},get.{_DEV_PLATFORM_DOMAIN}"
    PLATFORM_SITE_NAME: str = "PageRoute"
    TRUST_FORWARDED_HOST: bool = True

    # Resolution timing
    RESOLUTION_DEADLINE_SECONDS: float = 3.0
    LOOKUP_TIMEOUT_SECONDS: float = 1.5

    # Bot response caching
    SEO_CACHE_MAX_AGE: int = 300        # resolved content
    SEO_FALLBACK_CACHE_MAX_AGE: int = 120

    # Human pass-through: empty / redirect / inject
    PASSTHROUGH_MODE: str = "empty"
    APP_ORIGIN: str = _DEV_APP_ORIGIN
    APP_SHELL_URL: str = f"{_DEV_APP_ORIGIN}/index.html"
    APP_SHELL_TIMEOUT: float = 5.0

    # Internal tooling: force bot rendering for a request
    FORCE_BOT_PARAM: str = "force_bot"

    # Paths the prerender middleware never touches
    PRERENDER_SKIP_PREFIXES: str = "/api,/health,/metrics,/docs,/redoc,/openapi.json,/assets,/favicon.ico"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @model_validator(mode="after")
    def _validate_deployment(self) -> "Settings":
        """Block startup if host routing is still pointed at development defaults."""
        if self.PASSTHROUGH_MODE not in ("empty", "redirect", "inject"):
            raise ValueError(
                f"PASSTHROUGH_MODE must be one of empty/redirect/inject, got '{self.PASSTHROUGH_MODE}'"
            )
        if self.APP_ENV in ("production", "staging"):
            if self.PLATFORM_DOMAIN == _DEV_PLATFORM_DOMAIN:
                raise ValueError(
                    "PLATFORM_DOMAIN is still the development default. "
                    "Set it to the platform's public domain in .env or environment."
                )
            if self.PASSTHROUGH_MODE != "empty" and self.APP_ORIGIN == _DEV_APP_ORIGIN:
                raise ValueError(
                    "APP_ORIGIN points at localhost but PASSTHROUGH_MODE needs the real application origin."
                )
        return self

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_SERVER}/{self.POSTGRES_DB}"
        )

    @property
    def redis_url(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_CACHE_DB}"

    @property
    def reserved_subdomains(self) -> List[str]:
        return _split_csv(self.RESERVED_SUBDOMAINS)

    @property
    def platform_host_aliases(self) -> List[str]:
        return _split_csv(self.PLATFORM_HOST_ALIASES)

    @property
    def system_hosts(self) -> List[str]:
        return _split_csv(self.SYSTEM_HOSTS)

    @property
    def prerender_skip_prefixes(self) -> List[str]:
        return [p.strip() for p in self.PRERENDER_SKIP_PREFIXES.split(",") if p.strip()]

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_staging(self) -> bool:
        return self.APP_ENV == "staging"

settings = Settings()
