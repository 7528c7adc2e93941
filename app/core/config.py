from functools import lru_cache
import json
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_cors_origins(value: str) -> list[str]:
    if not value:
        return []

    parsed: list[str]
    raw = value.strip()
    if raw.startswith("["):
        try:
            items = json.loads(raw)
            parsed = [str(item).strip() for item in items if str(item).strip()]
        except (TypeError, ValueError):
            parsed = []
    else:
        parsed = [origin.strip() for origin in raw.split(",") if origin.strip()]

    # Preserve order and remove duplicates.
    return list(dict.fromkeys(parsed))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_name: str = "Cantina Orion"
    environment: str = "development"
    api_v1_prefix: str = "/api/v1"

    # Logging
    log_level: str = "INFO"
    log_format: str = "plain"  # plain|json

    # Security
    secret_key: str
    access_token_expire_minutes: int = 30

    # Database
    database_url: str
    db_pool_size: int = 5
    db_max_overflow: int = 5
    db_pool_timeout: int = 15
    db_pool_recycle: int = 1200
    db_pool_pre_ping: bool = True

    # Purchase gateway: "local" runs the ledger engine against our database,
    # "remote" calls the hosted process_purchase procedure.
    purchase_gateway: str = "local"
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None
    remote_gateway_timeout_seconds: int = 15

    # PagSeguro (Pix)
    pagseguro_token: Optional[str] = None
    pagseguro_base_url: str = "https://pix.api.pagseguro.com"
    pagseguro_webhook_secret: Optional[str] = None
    pix_expiration_minutes: int = 30
    pix_default_description: str = "Cantina Orion"

    # Z-API (WhatsApp)
    zapi_base_url: Optional[str] = None
    zapi_instance_id: Optional[str] = None
    zapi_token: Optional[str] = None
    zapi_security_token: Optional[str] = None
    zapi_timeout_seconds: int = 15
    whatsapp_from_name: str = "Cantina Orion"

    # Used in notification links to the guardian portal
    app_base_url: str = ""

    # Scheduled jobs
    outbox_batch_size: int = 20
    weekly_summary_days: int = 7
    job_token: Optional[str] = None

    rate_limit_enabled: bool = True

    # CORS
    cors_origins: str = "http://localhost:5173,http://localhost:3000"
    auto_create_tables: bool = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
