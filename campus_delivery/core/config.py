"""
Campus Delivery: Configuration
All settings are read from environment variables (or .env file).
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    SERVICE_NAME: str = "campus-delivery"
    SERVICE_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # ── JWT (tokens issued by the identity provider) ─────────
    JWT_SECRET_KEY: str = "CHANGE_ME_IN_PRODUCTION"
    JWT_ALGORITHM: str = "HS256"

    # ── Redis ─────────────────────────────────────────────────
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @property
    def celery_broker_url(self) -> str:
        return self.redis_url

    @property
    def celery_result_backend(self) -> str:
        return self.redis_url

    # ── Client storage / idempotency ──────────────────────────
    CLIENT_STORAGE_TTL_SECONDS: int = 60 * 60 * 24 * 30
    IDEMPOTENCY_KEY_TTL_SECONDS: int = 86400

    # ── Downstream Services ────────────────────────────────────
    BACKEND_URL: str = "http://localhost:4000"
    SHEETS_BACKEND_URL: str = "http://localhost:4000"
    MEDIA_UPLOAD_URL: str = "https://api.cloudinary.com/v1_1/demo/image/upload"
    MEDIA_UPLOAD_PRESET: str = ""
    RECAPTCHA_VERIFY_URL: str = "https://www.google.com/recaptcha/api/siteverify"
    RECAPTCHA_SECRET_KEY: str = ""
    RECAPTCHA_VERIFY_ENABLED: bool = False

    HTTP_TIMEOUT_SECONDS: float = 10.0
    ORDERS_FETCH_LIMIT: int = 1000

    # ── Delivery fee fallback ──────────────────────────────────
    DEFAULT_DELIVERY_FEE: float = 150
    DEFAULT_ACCOUNT_TITLE: str = "Maratib Ali"
    DEFAULT_BANK_NAME: str = "SadaPay"
    DEFAULT_ACCOUNT_NUMBER: str = "03330374616"

    # ── Checkout ───────────────────────────────────────────────
    ALLOWED_EMAIL_DOMAIN: str = ""          # e.g. "@cfd.nu.edu.pk"; empty disables the check
    ORDER_TIMEZONE: str = "Asia/Karachi"
    ORDER_PROJECTION_MODE: str = "inline"   # "inline" (best-effort) or "queued" (Celery, retried)
    PROJECTION_MAX_RETRIES: int = 5
    PROJECTION_BASE_DELAY_SECONDS: int = 5

    # ── Observability ─────────────────────────────────────────
    METRICS_ENABLED: bool = True
    HEALTH_CHECK_TIMEOUT: float = 5.0


@lru_cache()
def get_settings() -> Settings:
    return Settings()
