from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Marketplace writes bypass RLS

    # Stripe
    stripe_secret_key: str = ""
    stripe_webhook_secret: Optional[str] = None
    stripe_premium_price_id: Optional[str] = None  # Recurring price for the Visionary tier
    currency: str = "usd"
    site_url: str = "http://localhost:5173"  # Fallback origin for checkout redirects

    # Marketplace
    listing_min_price_cents: int = 100
    listing_max_price_cents: int = 100_000_000
    max_transfers_per_window: int = 3  # Enforced by the database; used in messages
    transfer_window_hours: int = 24
    checkout_session_lookup_limit: int = 100

    # App
    app_name: str = "enpensent-api"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"
    purchase_rate_limit: str = "20/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",
        extra="ignore"
    )


settings = Settings()
