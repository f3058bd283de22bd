from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_env: str = Field(default="dev", alias="APP_ENV")
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    enable_openapi_docs: bool = Field(default=True, alias="ENABLE_OPENAPI_DOCS")

    database_url: str = Field(alias="DATABASE_URL")
    redis_url: str = Field(alias="REDIS_URL")

    celery_broker_url: str = Field(alias="CELERY_BROKER_URL")
    celery_result_backend: str = Field(alias="CELERY_RESULT_BACKEND")

    payu_merchant_key: str = Field(default="", alias="PAYU_MERCHANT_KEY")
    payu_merchant_salt: str = Field(default="", alias="PAYU_MERCHANT_SALT")
    payu_enforce_response_hash: bool = Field(default=False, alias="PAYU_ENFORCE_RESPONSE_HASH")

    razorpay_key_id: str = Field(default="", alias="RAZORPAY_KEY_ID")
    razorpay_key_secret: str = Field(default="", alias="RAZORPAY_KEY_SECRET")
    razorpay_api_base_url: str = Field(
        default="https://api.razorpay.com/v1",
        alias="RAZORPAY_API_BASE_URL",
    )
    razorpay_timeout_seconds: float = Field(default=10.0, alias="RAZORPAY_TIMEOUT_SECONDS")

    admin_session_secret: str = Field(default="", alias="ADMIN_SESSION_SECRET")
    admin_session_ttl_hours: int = Field(default=24, alias="ADMIN_SESSION_TTL_HOURS")
    dev_tester_password: str = Field(default="", alias="DEV_TESTER_PASSWORD")

    business_timezone: str = Field(default="Asia/Kolkata", alias="BUSINESS_TIMEZONE")
    payments_stale_created_hours: int = Field(default=24, alias="PAYMENTS_STALE_CREATED_HOURS")

    ops_alert_webhook_url: str = Field(default="", alias="OPS_ALERT_WEBHOOK_URL")
    ops_alert_slack_webhook_url: str = Field(default="", alias="OPS_ALERT_SLACK_WEBHOOK_URL")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
