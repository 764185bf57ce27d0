"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
Operator-editable values (destination API key, filter tag) live in the
settings table; the values here are the fallback.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (for admin operations)"
    )

    # ===================
    # API SECURITY
    # ===================
    api_key: Optional[str] = Field(
        None,
        description="API key for authentication"
    )

    # ===================
    # SHOPIFY (SOURCE CATALOG)
    # ===================
    shopify_shop_domain: str = Field(
        default="",
        description="Store domain, e.g. my-store.myshopify.com"
    )
    shopify_access_token: Optional[str] = Field(
        None,
        description="Admin API access token"
    )
    shopify_api_version: str = Field(
        default="2025-01",
        pattern=r"^\d{4}-\d{2}$",
        description="Admin API version"
    )
    shopify_metafield_namespace: str = Field(
        default="custom",
        description="Namespace used for rau_* metafields"
    )
    shopify_timeout_seconds: float = Field(
        default=30,
        gt=0,
        le=120,
        description="Timeout for Admin API requests"
    )

    # ===================
    # DESTINATION (AUTHENTICATION SERVICE)
    # ===================
    destination_api_url: str = Field(
        default="https://customer-api.realauthentication.com/v2",
        description="Base URL of the destination REST API"
    )
    destination_api_key: Optional[str] = Field(
        None,
        description="Bearer token, used when none is stored in settings table"
    )
    destination_order_email: str = Field(
        default="",
        description="Contact email attached to every created order"
    )
    destination_documentation_name: str = Field(
        default="RA",
        description="documentation_name field sent with every order"
    )
    destination_order_link_template: str = Field(
        default="https://customer-api.realauthentication.com/v2/orders/{order_id}",
        description="Link written back to the product; {order_id} is substituted"
    )
    destination_timeout_seconds: float = Field(
        default=30,
        gt=0,
        le=300,
        description="Timeout for destination API requests"
    )
    destination_rate_per_second: float = Field(
        default=2.0,
        gt=0,
        le=100,
        description="Sustained destination request rate (token bucket refill)"
    )
    destination_burst: int = Field(
        default=4,
        ge=1,
        le=100,
        description="Token bucket capacity"
    )

    # ===================
    # SYNC BEHAVIOUR
    # ===================
    sync_page_size: int = Field(
        default=20,
        ge=1,
        le=250,
        description="Products fetched per batch"
    )
    sync_batch_pause_seconds: float = Field(
        default=60,
        ge=0,
        le=600,
        description="Pause after every page_size items examined"
    )
    sync_item_delay_seconds: float = Field(
        default=0.3,
        ge=0,
        le=60,
        description="Pause before each non-skipped item"
    )
    image_upload_workers: int = Field(
        default=4,
        ge=1,
        le=20,
        description="Concurrent image uploads per product"
    )
    fallback_brand_id: int = Field(
        default=2,
        ge=1,
        description="Brand id used when the brand name is not found under the category"
    )
    unmatched_image_policy: str = Field(
        default="attach",
        pattern="^(attach|drop)$",
        description="What to do with uploaded images that match no category slot"
    )
    require_images: bool = Field(
        default=True,
        description="Drop catalog items that have no images at all"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def shopify_configured(self) -> bool:
        """Check if the source catalog is reachable."""
        return bool(self.shopify_shop_domain and self.shopify_access_token)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
