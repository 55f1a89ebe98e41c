"""Settings for the admissions API, read from the environment and `.env`."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven configuration. Field names match the variable names."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    VERSION: str = "0.03.00"

    # Only enable behind a reverse proxy that sets X-Forwarded-For
    TRUST_PROXY_HEADERS: bool = False

    DATABASE_URL: str = "sqlite:///./admissions.db"

    # Staff session tokens. JWT_SECRET_PREVIOUS keeps old tokens valid while rotating.
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""
    JWT_EXPIRES_HOURS: int = 8

    # Comma-separated list of admin UI origins
    CORS_ORIGINS: str = "http://localhost:3000"

    # Resend delivery. Without both key and sender address, emails are only logged.
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = ""
    EMAIL_BRAND_NAME: str = "Langzy"
    EMAIL_TIMEOUT_SECONDS: float = 20.0

    SENTRY_DSN: str = ""
    LOG_LEVEL: str = "INFO"

    # Public submissions per minute per client address; 0 disables the limit
    RATE_LIMIT_SUBMIT: int = 10
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Secrets accepted for verification, newest first."""
        return [secret for secret in (self.JWT_SECRET, self.JWT_SECRET_PREVIOUS) if secret]

    @property
    def email_delivery_enabled(self) -> bool:
        return bool(self.RESEND_API_KEY and self.EMAIL_FROM)


settings = Settings()
