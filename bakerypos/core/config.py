from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pydantic import field_validator


def _parse_bool(v):
    if isinstance(v, str):
        return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
    return bool(v)


class Settings(BaseSettings):
    # Database settings
    POSTGRES_USER: str = 'bakery_user'
    POSTGRES_PASSWORD: str = 'bakery_pass'
    POSTGRES_DB: str = 'bakery_pos'
    POSTGRES_HOST: str = 'postgres'
    POSTGRES_PORT: int = 5432

    # Full URL overrides (take precedence over the POSTGRES_* parts)
    DATABASE_URL: Optional[str] = None
    ASYNC_DATABASE_URL: Optional[str] = None

    # Session tokens issued by the identity provider
    APP_SECRET_STRING: str = 'your-super-secret-key-here-change-in-production-2024'
    ALGORITHM: str = 'HS256'
    SESSION_COOKIE_NAME: str = 'session_token'
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Midtrans payment gateway
    MIDTRANS_SERVER_KEY: str = ''
    MIDTRANS_CLIENT_KEY: str = ''
    MIDTRANS_IS_PRODUCTION: bool = False
    PAYMENT_GATEWAY_TIMEOUT: float = 15.0

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Business defaults
    DEFAULT_MIN_STOCK_ALERT: int = 10
    DEFAULT_REPORT_DAYS: int = 30
    TRANSACTION_NUMBER_PREFIX: str = 'TRX'
    DEFAULT_CURRENCY: str = 'IDR'
    DEFAULT_TIMEZONE: str = 'Asia/Jakarta'

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def async_database_url(self) -> str:
        if self.ASYNC_DATABASE_URL:
            return self.ASYNC_DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def midtrans_snap_url(self) -> str:
        host = "app.midtrans.com" if self.MIDTRANS_IS_PRODUCTION else "app.sandbox.midtrans.com"
        return f"https://{host}/snap/v1"

    @property
    def midtrans_api_url(self) -> str:
        host = "api.midtrans.com" if self.MIDTRANS_IS_PRODUCTION else "api.sandbox.midtrans.com"
        return f"https://{host}/v2"

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", mode="before")
    @classmethod
    def parse_debug(cls, v):
        return _parse_bool(v)

    @field_validator("MIDTRANS_IS_PRODUCTION", mode="before")
    @classmethod
    def parse_midtrans_production(cls, v):
        return _parse_bool(v)


settings = Settings()
