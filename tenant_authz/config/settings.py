from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    # ── Application ──────────────────────────────────────────────
    app_name: str = "Tenant Authorization Service"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"
    api_version: str = "v1"

    # ── Database ─────────────────────────────────────────────────
    mongodb_atlas_uri: Optional[str] = None
    database_name: str = "tenant_authz_db"
    mongo_timeout_ms: int = 5000

    # ── Tenant resolution ────────────────────────────────────────
    tenant_header: str = "x-tenant-id"
    seed_default_roles: bool = True

    # Header carrying the user id from an authenticating gateway (off by default)
    trusted_user_header: Optional[str] = None

    # ── Authorization ────────────────────────────────────────────
    role_cache_ttl_seconds: float = 60.0
    branch_header: str = "x-branch-id"
    owner_role_key: str = "owner"

    # ── CORS ─────────────────────────────────────────────────────
    cors_allowed_origins: list[str] = [
        "http://localhost:4200",
        "http://localhost:3000",
        "http://127.0.0.1:4200",
    ]
    cors_allow_credentials: bool = True
    cors_allowed_methods: list[str] = ["*"]
    cors_allowed_headers: list[str] = ["*"]

    class Config:
        env_file = ".env.local"
        extra = "ignore"


# ── Module-level singleton ──────────────────────────────────────
settings = Settings()
