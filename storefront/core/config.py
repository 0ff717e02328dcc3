"""Storefront Cart Configuration"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment"""

    model_config = SettingsConfigDict(
        env_file="config/.env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Storefront Cart"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8001

    # Guest cart storage; carts stay in memory when unset
    cart_storage_dir: Optional[str] = None

    # Backend-as-a-service for signed-in users' carts
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    supabase_timeout: float = 10.0

    # Cart policy
    clear_cart_on_logout: bool = False
    session_max_age_hours: int = 24

    # Pricing
    currency: str = "INR"
    base_shipping_cost: float = 5.0

    @property
    def supabase_configured(self) -> bool:
        """Check if remote cart sync is configured"""
        return all([self.supabase_url, self.supabase_anon_key])


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
