from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Environments allowed to run without any session-token verification key
LOCAL_ENVIRONMENTS = frozenset({"development", "test"})


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database: required, there is no usable default
    database_url: str
    db_pool_size: int = 20
    db_max_overflow: int = 5
    db_pool_recycle_seconds: int = 3600

    # Application
    environment: str = "development"
    port: int = 8000
    log_level: str = "info"

    # CORS
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    # Identity provider (Clerk) session tokens
    clerk_jwks_url: str = ""
    clerk_issuer: str = ""
    clerk_audience: str = ""
    clerk_jwks_cache_seconds: int = 3600

    # Shared-secret token verification, used when no JWKS URL is configured.
    # Empty disables the HS256 path: every token is rejected.
    jwt_secret_key: str = ""
    jwt_algorithm: str = "HS256"

    # Clerk webhooks (svix-signed)
    clerk_webhook_secret: str = ""

    # Redis: tenant directory cache
    redis_url: str = "redis://localhost:6379/0"
    tenant_cache_enabled: bool = True
    tenant_cache_ttl_seconds: int = 60

    # Bootstrap
    bootstrap_tenant_name: str = "New Salon"
    seed_default_services: bool = True

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @model_validator(mode="after")
    def validate_token_verification(self) -> "Settings":
        """Refuse to start outside local environments with no way to verify tokens."""
        if self.environment in LOCAL_ENVIRONMENTS:
            return self
        if not self.clerk_jwks_url and not self.jwt_secret_key:
            raise ValueError(
                f"CLERK_JWKS_URL or JWT_SECRET_KEY is required when ENVIRONMENT={self.environment!r}."
            )
        return self

    @property
    def uses_jwks(self) -> bool:
        return bool(self.clerk_jwks_url)


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process. Raises if DATABASE_URL is missing."""
    return Settings()
