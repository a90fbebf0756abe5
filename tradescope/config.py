"""
Centralized configuration for TradeScope.

All configuration is loaded from environment variables with sensible defaults.
Secret values are excluded from repr() so a logged Config never leaks them.

Usage:
    from tradescope.config import get_config
    cfg = get_config()
    print(cfg.db.name)            # "tradescope"
    print(cfg.missing())          # ["TRADESCOPE_ENCRYPTION_SECRET", ...]
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class VaultConfig:
    """Master secret used to derive per-credential encryption keys."""

    master_secret: str = field(default="", repr=False)

    @property
    def configured(self) -> bool:
        return bool(self.master_secret)


@dataclass(frozen=True)
class AuthConfig:
    """Supabase identity provider (token introspection)."""

    supabase_url: str = ""
    service_role_key: str = field(default="", repr=False)
    timeout: float = 10.0

    @property
    def configured(self) -> bool:
        return bool(self.supabase_url and self.service_role_key)

    @property
    def user_url(self) -> str:
        return f"{self.supabase_url.rstrip('/')}/auth/v1/user"


@dataclass(frozen=True)
class DatabaseConfig:
    """PostgreSQL connection parameters."""

    host: str = ""  # empty = Unix socket (peer auth); set to 127.0.0.1 for TCP
    port: int = 5432
    name: str = "tradescope"
    user: str = "tradescope"
    password: str = field(default="", repr=False)
    connect_timeout: int = 5

    @property
    def dict(self) -> dict[str, str | int]:
        """Return a psycopg2.connect() kwargs dict."""
        d: dict[str, str | int] = {
            "dbname": self.name,
            "port": self.port,
            "connect_timeout": self.connect_timeout,
        }
        if self.host:
            d["host"] = self.host
        if self.user:
            d["user"] = self.user
        if self.password:
            d["password"] = self.password
        return d


@dataclass(frozen=True)
class RedisConfig:
    """Redis connection parameters (shared rate-limit counters)."""

    host: str = "127.0.0.1"
    port: int = 6379
    db: int = 0
    password: str = field(default="", repr=False)

    @property
    def url(self) -> str:
        auth = f":{self.password}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"


@dataclass(frozen=True)
class RateLimitConfig:
    """Fixed-window limits for the key mutation endpoints."""

    max_requests: int = 5
    window_seconds: float = 60.0
    backend: str = "memory"  # "memory" or "redis"


@dataclass(frozen=True)
class AnthropicConfig:
    """Chart analysis provider. Fixed per deployment, never per request."""

    base_url: str = "https://api.anthropic.com"
    api_version: str = "2023-06-01"
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 1000
    timeout: float = 60.0

    @property
    def messages_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/v1/messages"


@dataclass(frozen=True)
class EmailConfig:
    """Resend email delivery for trade-decision logs (optional)."""

    resend_api_key: str = field(default="", repr=False)
    api_url: str = "https://api.resend.com/emails"
    from_address: str = "TradeScope AI <onboarding@resend.dev>"
    timeout: float = 10.0

    @property
    def configured(self) -> bool:
        return bool(self.resend_api_key)


@dataclass(frozen=True)
class Config:
    """Top-level TradeScope configuration."""

    vault: VaultConfig = field(default_factory=VaultConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    db: DatabaseConfig = field(default_factory=DatabaseConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    anthropic: AnthropicConfig = field(default_factory=AnthropicConfig)
    email: EmailConfig = field(default_factory=EmailConfig)

    store_backend: str = "postgres"  # "postgres" or "memory"

    # Server
    host: str = "127.0.0.1"
    port: int = 8787
    cors_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"

    def missing(self) -> list[str]:
        """Names of required settings that are absent. Never includes values."""
        names = []
        if not self.vault.configured:
            names.append("TRADESCOPE_ENCRYPTION_SECRET")
        if not self.auth.supabase_url:
            names.append("SUPABASE_URL")
        if not self.auth.service_role_key:
            names.append("SUPABASE_SERVICE_ROLE_KEY")
        return names


# Singleton
_config: Config | None = None


def get_config() -> Config:
    """Get or create the singleton config from environment variables."""
    global _config
    if _config is not None:
        return _config
    _config = _load_from_env()
    return _config


def _load_from_env() -> Config:
    """Load configuration from environment variables."""
    vault = VaultConfig(
        master_secret=os.environ.get(
            "TRADESCOPE_ENCRYPTION_SECRET", os.environ.get("ENCRYPTION_SECRET", "")
        ),
    )

    auth = AuthConfig(
        supabase_url=os.environ.get("SUPABASE_URL", os.environ.get("VITE_SUPABASE_URL", "")),
        service_role_key=os.environ.get("SUPABASE_SERVICE_ROLE_KEY", ""),
        timeout=float(os.environ.get("TRADESCOPE_AUTH_TIMEOUT", "10")),
    )

    db = DatabaseConfig(
        host=os.environ.get("TRADESCOPE_DB_HOST", ""),
        port=int(os.environ.get("TRADESCOPE_DB_PORT", "5432")),
        name=os.environ.get("TRADESCOPE_DB_NAME", "tradescope"),
        user=os.environ.get("TRADESCOPE_DB_USER", os.environ.get("USER", "tradescope")),
        password=os.environ.get("TRADESCOPE_DB_PASSWORD", ""),
    )

    redis_cfg = RedisConfig(
        host=os.environ.get("TRADESCOPE_REDIS_HOST", "127.0.0.1"),
        port=int(os.environ.get("TRADESCOPE_REDIS_PORT", "6379")),
        db=int(os.environ.get("TRADESCOPE_REDIS_DB", "0")),
        password=os.environ.get("TRADESCOPE_REDIS_PASSWORD", ""),
    )

    rate_limit = RateLimitConfig(
        max_requests=int(os.environ.get("TRADESCOPE_RATE_LIMIT_MAX", "5")),
        window_seconds=float(os.environ.get("TRADESCOPE_RATE_LIMIT_WINDOW", "60")),
        backend=os.environ.get("TRADESCOPE_RATE_LIMIT_BACKEND", "memory"),
    )

    anthropic = AnthropicConfig(
        base_url=os.environ.get("TRADESCOPE_ANTHROPIC_URL", "https://api.anthropic.com"),
        model=os.environ.get("TRADESCOPE_ANTHROPIC_MODEL", "claude-sonnet-4-20250514"),
        max_tokens=int(os.environ.get("TRADESCOPE_ANTHROPIC_MAX_TOKENS", "1000")),
        timeout=float(os.environ.get("TRADESCOPE_ANTHROPIC_TIMEOUT", "60")),
    )

    email = EmailConfig(
        resend_api_key=os.environ.get("RESEND_API_KEY", ""),
        from_address=os.environ.get(
            "TRADESCOPE_EMAIL_FROM", "TradeScope AI <onboarding@resend.dev>"
        ),
    )

    origins = os.environ.get("TRADESCOPE_CORS_ORIGINS", "*")

    return Config(
        vault=vault,
        auth=auth,
        db=db,
        redis=redis_cfg,
        rate_limit=rate_limit,
        anthropic=anthropic,
        email=email,
        store_backend=os.environ.get("TRADESCOPE_STORE_BACKEND", "postgres"),
        host=os.environ.get("TRADESCOPE_HOST", "127.0.0.1"),
        port=int(os.environ.get("TRADESCOPE_PORT", "8787")),
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
        log_level=os.environ.get("TRADESCOPE_LOG_LEVEL", "INFO"),
    )


def reset_config() -> None:
    """Reset the singleton config (for testing)."""
    global _config
    _config = None
