import json
import os
from datetime import timedelta
from typing import Dict, List, Optional

from pydantic import EmailStr, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application Settings
    APP_NAME: str = "Sync School Management"
    VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database Settings
    DATABASE_URL: str
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Authentication Settings
    SECRET_KEY: SecretStr
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    TOKEN_ISSUER: str = "syncschool"
    BCRYPT_ROUNDS: int = 12

    # CORS Settings
    ALLOWED_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
        ]
    )

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None

    # Platform account seeded on startup
    SYSTEM_OWNER_EMAIL: EmailStr
    SYSTEM_OWNER_PASSWORD: SecretStr

    # Tenant resolution
    DEFAULT_TENANT_SLUG: Optional[str] = None
    TENANT_HEADER: str = "X-Tenant-Slug"
    TENANT_ID_HEADER: str = "X-Tenant-ID"

    # Email Settings (payment receipts)
    MAIL_ENABLED: bool = False
    MAIL_USERNAME: Optional[str] = None
    MAIL_PASSWORD: Optional[SecretStr] = None
    MAIL_FROM: Optional[EmailStr] = None
    MAIL_FROM_NAME: str = "Sync School Management"
    MAIL_SERVER: str = "smtp.gmail.com"
    MAIL_PORT: int = 465
    MAIL_STARTTLS: bool = False
    MAIL_SSL_TLS: bool = True

    # Push notification settings
    VAPID_PUBLIC_KEY: Optional[str] = None
    VAPID_PRIVATE_KEY: Optional[SecretStr] = None
    VAPID_CLAIMS_EMAIL: str = "mailto:admin@example.com"

    # Billing Settings
    SUBSCRIPTION_CURRENCY: str = "ZMW"
    PER_STUDENT_PRICE: float = 20.0
    TRIAL_DAYS: int = 14
    SUBSCRIPTION_WARNING_DAYS: int = 7
    INVOICE_DUE_DAYS: int = 30

    # Payments
    DUPLICATE_PAYMENT_WINDOW_MINUTES: int = 5

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return v

    @field_validator("MAIL_PORT")
    @classmethod
    def validate_mail_port(cls, v: int) -> int:
        if v not in (25, 465, 587, 1025):
            raise ValueError(f"Invalid SMTP port: {v}")
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    @property
    def push_enabled(self) -> bool:
        return bool(self.VAPID_PUBLIC_KEY and self.VAPID_PRIVATE_KEY)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )


settings = Settings()


# Helper Functions
def get_token_expires_delta(minutes: Optional[int] = None) -> timedelta:
    if minutes is None:
        minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES
    return timedelta(minutes=minutes)


def get_jwt_settings() -> dict:
    return {
        "secret_key": settings.SECRET_KEY.get_secret_value(),
        "algorithm": settings.ALGORITHM,
        "access_token_expire_minutes": settings.ACCESS_TOKEN_EXPIRE_MINUTES,
        "token_issuer": settings.TOKEN_ISSUER,
    }


def get_logging_config() -> Dict[str, Optional[str]]:
    return {
        "log_level": settings.LOG_LEVEL,
        "log_dir": settings.LOG_DIR,
    }


def get_email_settings() -> dict:
    return {
        "enabled": settings.MAIL_ENABLED,
        "username": settings.MAIL_USERNAME,
        "password": settings.MAIL_PASSWORD.get_secret_value() if settings.MAIL_PASSWORD else None,
        "from_email": settings.MAIL_FROM,
        "from_name": settings.MAIL_FROM_NAME,
        "server": settings.MAIL_SERVER,
        "port": settings.MAIL_PORT,
        "starttls": settings.MAIL_STARTTLS,
        "ssl_tls": settings.MAIL_SSL_TLS,
    }


def get_push_settings() -> dict:
    return {
        "enabled": settings.push_enabled,
        "public_key": settings.VAPID_PUBLIC_KEY,
        "private_key": settings.VAPID_PRIVATE_KEY.get_secret_value() if settings.VAPID_PRIVATE_KEY else None,
        "claims": {"sub": settings.VAPID_CLAIMS_EMAIL},
    }


def get_log_dir() -> str:
    folder = settings.LOG_DIR or os.path.join(os.getcwd(), "logs")
    os.makedirs(folder, exist_ok=True)
    return folder
