"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - Core functions never read settings; services pass configured values in

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support (ADR: developer UX)
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

from fulfillment.core.pricing import ShippingPolicy
from fulfillment.core.order_state_machine import TransitionRules


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://campo:campo@db:5432/campo"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Client → backend
    api_base_url: str = "http://localhost:8000/api/v1"
    api_timeout_seconds: float = 30

    # Cart persistence
    cart_storage_dir: str = ".campo-vida"
    cart_storage_key: str = "campo-vida-cart"
    # False rejects over-stock quantity updates; True clamps them to stock
    cart_clamp_on_update: bool = False

    # Pricing
    free_shipping_threshold: float = 1000.0
    flat_shipping_fee: float = 50.0

    # Fulfillment rules
    cod_required_gcash_orders: int = 5
    require_delivery_photo: bool = False

    # Payment-confirmation webhook
    payment_webhook_secret: str = "webhook-secret-placeholder"

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def shipping_policy(self) -> ShippingPolicy:
        return ShippingPolicy(self.free_shipping_threshold, self.flat_shipping_fee)

    @property
    def transition_rules(self) -> TransitionRules:
        return TransitionRules(require_delivery_photo=self.require_delivery_photo)


@lru_cache
def get_settings() -> Settings:
    return Settings()
