from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"

    # Database
    DATABASE_URL: str

    # JWT session
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    SESSION_MAX_AGE_DAYS: int = 30
    SESSION_UPDATE_AGE_HOURS: int = 24
    SESSION_COOKIE_NAME: str = "session_token"

    # CORS / frontend
    FRONTEND_URL: str = "http://localhost:3000"
    SIGN_IN_URL: str = "http://localhost:3000/"
    APP_BASE_URL: str = "http://localhost:8000"

    # Attempt limits for login and registration
    LOGIN_RATE_LIMIT: int = 5
    REGISTER_RATE_LIMIT: int = 5
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    RATE_LIMIT_RETENTION_SECONDS: int = 300
    RATE_LIMIT_SWEEP_INTERVAL_SECONDS: int = 60
    # Comma-separated reverse proxy addresses allowed to set X-Forwarded-For
    TRUSTED_PROXY_IPS: str = ""

    # Revoked token cleanup
    REVOCATION_SWEEP_INTERVAL_MINUTES: int = 60
    SCHEDULER_ENABLED: bool = True

    # One-time tokens sent by email
    VERIFICATION_TOKEN_EXPIRE_HOURS: int = 24
    PASSWORD_RESET_TOKEN_EXPIRE_MINUTES: int = 60

    # Outbound email (logged instead of sent when SMTP_HOST is empty)
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    EMAIL_FROM: Optional[str] = None

    # Narration files produced by the text-to-speech collaborator
    AUDIO_CACHE_DIR: str = "audio-cache"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def session_cookie_name(self) -> str:
        """Cookie name; production cookies carry the __Secure- prefix."""
        if self.is_production:
            return f"__Secure-{self.SESSION_COOKIE_NAME}"
        return self.SESSION_COOKIE_NAME

    @property
    def trusted_proxy_ips(self) -> set[str]:
        return {ip.strip() for ip in self.TRUSTED_PROXY_IPS.split(",") if ip.strip()}

    def validate_required_secrets(self) -> list[str]:
        """Validate that critical secrets are set. Returns list of errors."""
        errors = []
        if not self.SECRET_KEY or len(self.SECRET_KEY) < 16:
            errors.append("SECRET_KEY must be set and at least 16 characters")
        if not self.DATABASE_URL:
            errors.append("DATABASE_URL must be set")
        if self.is_production:
            if not self.SMTP_HOST:
                errors.append("SMTP_HOST must be set in production")
            if not self.SIGN_IN_URL.startswith("https://"):
                errors.append("SIGN_IN_URL must use https in production")
        return errors

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
