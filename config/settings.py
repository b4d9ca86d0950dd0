"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
Credentials are optional so the service can boot (and tests can import)
without them; the routes check the *_configured properties before a run.
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
    # GOOGLE DRIVE (SOURCE)
    # ===================
    google_client_id: Optional[str] = Field(
        None,
        description="OAuth client ID used to refresh Drive access tokens"
    )
    google_client_secret: Optional[str] = Field(
        None,
        description="OAuth client secret used to refresh Drive access tokens"
    )
    google_token_url: str = Field(
        default="https://oauth2.googleapis.com/token",
        description="OAuth token endpoint"
    )
    drive_api_url: str = Field(
        default="https://www.googleapis.com/drive/v3",
        description="Drive v3 REST base URL"
    )

    # ===================
    # SHOPIFY (DESTINATION)
    # ===================
    shopify_shop_domain: Optional[str] = Field(
        None,
        description="Shop domain, e.g. my-store.myshopify.com"
    )
    shopify_access_token: Optional[str] = Field(
        None,
        description="Admin API access token"
    )
    shopify_api_version: str = Field(
        default="2024-10",
        description="Admin GraphQL API version"
    )

    # ===================
    # CATALOG
    # ===================
    catalog_query: str = Field(
        default='product_type:"Wallpaper" OR product_type:wallpaper OR tag:wallpaper OR tag:Wallpaper',
        description="Product search filter for the target category"
    )
    catalog_page_size: int = Field(
        default=50,
        ge=1,
        le=250,
        description="Products per catalog page"
    )
    catalog_max_products: int = Field(
        default=250,
        ge=1,
        le=10000,
        description="Maximum products fetched per run"
    )
    color_option_names: list[str] = Field(
        default=["color", "colour"],
        description="Variant option names recognized as the color attribute"
    )

    # ===================
    # SOURCE RATE LIMIT
    # ===================
    rate_limit_calls: int = Field(
        default=10000,
        ge=1,
        description="Calls admitted per sliding window"
    )
    rate_limit_window_ms: int = Field(
        default=60000,
        ge=100,
        description="Sliding window length in milliseconds"
    )
    rate_limit_max_wait_ms: int = Field(
        default=30000,
        ge=0,
        description="Cap on a single deferred wait"
    )
    rate_limit_max_attempts: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Admission attempts before RateLimitExceeded"
    )

    # ===================
    # DESTINATION THROTTLING
    # ===================
    destination_quota_max_attempts: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Attempts on a throttled Shopify call before RateLimitExceeded"
    )
    destination_quota_max_wait_ms: int = Field(
        default=30000,
        ge=0,
        description="Cap on a single throttle wait"
    )

    # ===================
    # RETRY / POLLING
    # ===================
    retry_max_attempts: int = Field(
        default=4,
        ge=1,
        le=10,
        description="Attempts for transient network failures (initial + retries)"
    )
    retry_base_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Exponential backoff multiplier"
    )
    retry_max_delay_seconds: float = Field(
        default=10.0,
        ge=0,
        description="Cap on a single backoff delay"
    )
    asset_poll_max_attempts: int = Field(
        default=5,
        ge=1,
        le=30,
        description="Polls before giving up on a processing asset"
    )
    asset_poll_initial_delay_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Delay before the first asset poll"
    )
    asset_poll_backoff: float = Field(
        default=2.0,
        ge=1,
        description="Multiplier applied to the poll delay after each attempt"
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for outbound HTTP calls"
    )

    # ===================
    # METAFIELDS
    # ===================
    image_metafield_namespace: str = Field(default="wallpaper")
    image_metafield_key: str = Field(default="color_images")
    spec_metafield_namespace: str = Field(default="custom")
    spec_metafield_key: str = Field(default="spec_sheets")

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
        """Check if the destination store is configured."""
        return bool(self.shopify_shop_domain and self.shopify_access_token)

    @property
    def google_refresh_configured(self) -> bool:
        """Check if Drive tokens can be refreshed."""
        return bool(self.google_client_id and self.google_client_secret)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
