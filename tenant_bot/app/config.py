from __future__ import annotations

from decimal import Decimal
from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central application configuration."""

    app_name: str = Field(default="Tenant Booking Bot")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # MongoDB
    mongo_uri: str = Field(default="mongodb://localhost:27017")
    mongo_database: str = Field(default="tenant_bot")
    tenants_collection: str = Field(default="tenants")
    knowledge_collection: str = Field(default="knowledge_bases")
    orders_collection: str = Field(default="orders")

    # Gemini
    gemini_enabled: bool = Field(default=True, validation_alias=AliasChoices("GEMINI_ENABLED", "AI_ENABLED"))
    gemini_api_key: str = Field(default="", validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_API_KEY"))
    gemini_model: str = Field(
        default="gemini-2.5-flash",
        validation_alias=AliasChoices("GEMINI_MODEL", "GEMINI_CHAT_MODEL"),
    )
    gemini_temperature: float = Field(default=0.7)
    gemini_max_output_tokens: int = Field(default=1024)
    ai_max_attempts: int = Field(default=2, ge=1)
    ai_retry_backoff_seconds: float = Field(default=1.0, ge=0)
    ai_timeout_seconds: float = Field(default=30.0, gt=0)
    enable_fallback: bool = Field(default=True)

    # Conversation
    rate_limit_seconds: float = Field(default=1.0, ge=0)
    session_timeout_seconds: float = Field(default=30 * 60, gt=0)
    session_sweep_interval_seconds: float = Field(default=5 * 60, gt=0)
    max_history_turn_pairs: int = Field(default=10, ge=1)
    max_party_size: int = Field(default=50, ge=1)
    default_unit_price: Decimal = Field(default=Decimal("50"))
    default_language: str = Field(default="en")
    timezone: str = Field(default="Africa/Dar_es_Salaam")
    order_id_prefix: str = Field(default="ORD")

    # Outbound messaging (admin notifications)
    messaging_api_url: str = Field(
        default="",
        validation_alias=AliasChoices("MESSAGING_API_URL", "WHATSAPP_API_URL"),
    )
    messaging_api_token: str = Field(
        default="",
        validation_alias=AliasChoices("MESSAGING_API_TOKEN", "WHATSAPP_API_TOKEN"),
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
