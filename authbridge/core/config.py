from __future__ import annotations

import os
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseAppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "AuthBridge"
    ENV: str = "dev"
    DATABASE_URL: str | None = None
    REDIS_URL: str | None = "redis://localhost:6379/0"
    REDIS_SSL_CERT_REQS: str | None = "required"
    REDIS_SSL_CA_CERTS: str | None = None

    FRONTEND_URL: str = "http://localhost:3000"
    BACKEND_URL: str = "http://localhost:8000"  # Base for provider callback URLs
    CORS_ALLOW_ORIGINS: list[str] = ["*"]
    CORS_ALLOW_METHODS: list[str] = ["*"]
    CORS_ALLOW_HEADERS: list[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CONTENT_SECURITY_POLICY: str = "default-src 'self'; frame-ancestors 'none'"
    HSTS_SECONDS: int = 31_536_000
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "plain"
    SENTRY_DSN: str | None = None
    METRICS_BEARER_TOKEN: str | None = None  # Required on /metrics when set

    # Session tokens
    SESSION_JWT_SECRET: str = "change_me"
    SESSION_TTL_SECONDS: int = 86_400

    # OAuth flow
    OAUTH_STATE_TTL_SECONDS: int = 300
    OAUTH_HTTP_TIMEOUT_SECONDS: float = 10.0
    OAUTH_AUTHORIZE_RATE_LIMIT: str = "30/minute"
    OAUTH_CALLBACK_RATE_LIMIT: str = "60/minute"
    RATE_LIMIT_ENABLED: bool = True
    # Frontend origins allowed as redirect_uri targets; empty allows any
    OAUTH_ALLOWED_REDIRECT_ORIGINS: list[str] = []

    # Provider credentials (a provider is enabled once its client id is set)
    GOOGLE_CLIENT_ID: str | None = None
    GOOGLE_CLIENT_SECRET: str | None = None
    APPLE_CLIENT_ID: str | None = None
    APPLE_CLIENT_SECRET: str | None = None
    APPLE_TEAM_ID: str | None = None
    APPLE_KEY_ID: str | None = None
    APPLE_PRIVATE_KEY: str | None = None  # PEM, "\n" escapes allowed
    MICROSOFT_CLIENT_ID: str | None = None
    MICROSOFT_CLIENT_SECRET: str | None = None
    MICROSOFT_TENANT: str = "common"
    GITHUB_CLIENT_ID: str | None = None
    GITHUB_CLIENT_SECRET: str | None = None
    DISCORD_CLIENT_ID: str | None = None
    DISCORD_CLIENT_SECRET: str | None = None
    FACEBOOK_CLIENT_ID: str | None = None
    FACEBOOK_CLIENT_SECRET: str | None = None
    LINKEDIN_CLIENT_ID: str | None = None
    LINKEDIN_CLIENT_SECRET: str | None = None
    X_CLIENT_ID: str | None = None
    X_CLIENT_SECRET: str | None = None
    KAKAO_CLIENT_ID: str | None = None
    KAKAO_CLIENT_SECRET: str | None = None
    NAVER_CLIENT_ID: str | None = None
    NAVER_CLIENT_SECRET: str | None = None

    @field_validator("APPLE_PRIVATE_KEY", mode="before")
    @classmethod
    def unescape_private_key(cls, v):
        """Allow the PEM to be provided on a single line with literal \\n."""
        if isinstance(v, str):
            return v.replace("\\n", "\n")
        return v

    @model_validator(mode="after")
    def _validate_required_fields(self) -> BaseAppSettings:
        # Convert Heroku's postgres:// URL to postgresql://
        if self.DATABASE_URL and self.DATABASE_URL.startswith("postgres://"):
            self.DATABASE_URL = self.DATABASE_URL.replace("postgres://", "postgresql://", 1)

        required_in_prod = (
            "DATABASE_URL",
            "REDIS_URL",
            "SESSION_JWT_SECRET",
        )
        if self.ENV.lower() == "prod":
            missing = [name for name in required_in_prod if not getattr(self, name)]
            if missing:
                raise ValueError(f"Missing required production settings: {', '.join(missing)}")
            if self.SESSION_JWT_SECRET == "change_me":
                raise ValueError("Insecure default secrets in production: SESSION_JWT_SECRET uses default placeholder")
        return self

    def provider_credentials(self, provider: str) -> tuple[str | None, str | None]:
        """Return ``(client_id, client_secret)`` for a provider tag."""
        prefix = provider.upper()
        return getattr(self, f"{prefix}_CLIENT_ID", None), getattr(self, f"{prefix}_CLIENT_SECRET", None)


class DevSettings(BaseAppSettings):
    ENV: str = "dev"
    DATABASE_URL: str = "sqlite:///./storage/dev.db"


class TestSettings(BaseAppSettings):
    ENV: str = "test"
    DATABASE_URL: str = "sqlite:///:memory:"
    REDIS_URL: str | None = None
    SESSION_JWT_SECRET: str = "test-session-secret-with-enough-entropy"
    FRONTEND_URL: str = "https://app.example.com"
    BACKEND_URL: str = "http://testserver"
    RATE_LIMIT_ENABLED: bool = False
    GOOGLE_CLIENT_ID: str | None = "google-client-id"
    GOOGLE_CLIENT_SECRET: str | None = "google-client-secret"
    APPLE_CLIENT_ID: str | None = "com.example.web"
    APPLE_CLIENT_SECRET: str | None = "apple-client-secret"
    MICROSOFT_CLIENT_ID: str | None = "microsoft-client-id"
    MICROSOFT_CLIENT_SECRET: str | None = "microsoft-client-secret"
    GITHUB_CLIENT_ID: str | None = "github-client-id"
    GITHUB_CLIENT_SECRET: str | None = "github-client-secret"
    DISCORD_CLIENT_ID: str | None = "discord-client-id"
    DISCORD_CLIENT_SECRET: str | None = "discord-client-secret"
    FACEBOOK_CLIENT_ID: str | None = "facebook-client-id"
    FACEBOOK_CLIENT_SECRET: str | None = "facebook-client-secret"
    LINKEDIN_CLIENT_ID: str | None = "linkedin-client-id"
    LINKEDIN_CLIENT_SECRET: str | None = "linkedin-client-secret"
    X_CLIENT_ID: str | None = "x-client-id"
    X_CLIENT_SECRET: str | None = "x-client-secret"
    KAKAO_CLIENT_ID: str | None = "kakao-client-id"
    KAKAO_CLIENT_SECRET: str | None = "kakao-client-secret"
    NAVER_CLIENT_ID: str | None = "naver-client-id"
    NAVER_CLIENT_SECRET: str | None = "naver-client-secret"


class ProdSettings(BaseAppSettings):
    ENV: str = "prod"
    CORS_ALLOW_ORIGINS: list[str] = []
    LOG_FORMAT: str = "json"


_ENV_TO_SETTINGS: dict[str, type[BaseAppSettings]] = {
    "dev": DevSettings,
    "development": DevSettings,
    "test": TestSettings,
    "testing": TestSettings,
    "prod": ProdSettings,
    "production": ProdSettings,
}


@lru_cache
def get_settings() -> BaseAppSettings:
    env_name = os.getenv("APP_ENV") or os.getenv("ENV") or "dev"
    env = env_name.lower()
    settings_cls = _ENV_TO_SETTINGS.get(env, DevSettings)
    return settings_cls()


settings = get_settings()
