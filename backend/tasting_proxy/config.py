"""
Tasting Notes Proxy — Application Configuration
================================================

What:  Centralized configuration management using Pydantic Settings.
Why:   Type-safe environment variable loading with validation on startup.
How:   Pydantic Settings reads from environment variables (or .env file).
       `create_app()` receives a Settings instance and hands it to the
       Shopify client, the document store and the origin guard.
Who:   Imported by main.py and by tests that build their own instance.

Environment names follow the storefront deployment:
    SHOPIFY_SHOP / SHOPIFY_STORE_DOMAIN             → shopify_shop
    SHOPIFY_ADMIN_TOKEN / SHOPIFY_ADMIN_API_ACCESS_TOKEN → shopify_admin_token
"""

from typing import List, Set

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings

DEFAULT_ALLOWED_ORIGINS = (
    "https://famelia-wine.myshopify.com,"
    "https://famelia.com.au,"
    "https://www.famelia.com.au"
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Production deployments MUST set the shop domain and Admin API token.
    Everything else has a working default.
    """

    # ── Shopify Admin API ─────────────────────────────────────────────────
    # What: The *.myshopify.com domain the Admin API lives on
    shopify_shop: str = Field(
        default="",
        validation_alias=AliasChoices("shopify_shop", "shopify_store_domain"),
        description="Shop domain, e.g. famelia-wine.myshopify.com",
    )

    # What: Admin API access token (shpat_...)
    # Never logged, never returned in responses
    shopify_admin_token: str = Field(
        default="",
        validation_alias=AliasChoices(
            "shopify_admin_token", "shopify_admin_api_access_token"
        ),
        description="Admin API access token",
    )

    shopify_api_version: str = Field(default="2024-10")

    # What: Transport timeout for every upstream call, in seconds
    # No retry policy sits on top of this; a timeout fails the request
    upstream_timeout: float = Field(default=10.0, gt=0, le=120)

    # ── Tasting Document ──────────────────────────────────────────────────
    metafield_namespace: str = Field(default="tasting")
    metafield_key: str = Field(default="events")

    # What: Maximum stored length of nose / palate / note text
    text_max_length: int = Field(default=2000, ge=1, le=65536)

    # ── CORS ──────────────────────────────────────────────────────────────
    # What: Storefront origins allowed to call the proxy routes
    # Format: Comma-separated URLs (parsed by the property below)
    allowed_origins: str = Field(default=DEFAULT_ALLOWED_ORIGINS)

    @property
    def allowed_origins_list(self) -> List[str]:
        """Splits comma-separated origins into a list, dropping blanks."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def allowed_origins_set(self) -> Set[str]:
        return set(self.allowed_origins_list)

    # ── Logging ───────────────────────────────────────────────────────────
    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("shopify_shop")
    @classmethod
    def strip_shop_scheme(cls, v: str) -> str:
        """Accepts `https://shop.myshopify.com/` as well as the bare domain."""
        v = v.strip()
        for prefix in ("https://", "http://"):
            if v.startswith(prefix):
                v = v[len(prefix):]
        return v.rstrip("/")

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @property
    def shopify_configured(self) -> bool:
        return bool(self.shopify_shop and self.shopify_admin_token)

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that the upstream credentials are configured.
        When:  Called during app startup (lifespan).
        Why:   Fail loudly in the logs instead of on the first customer save.
        """
        errors = []
        if not self.shopify_shop:
            errors.append("SHOPIFY_SHOP is not set (e.g. famelia-wine.myshopify.com)")
        if not self.shopify_admin_token:
            errors.append(
                "SHOPIFY_ADMIN_TOKEN is not set. "
                "Create an Admin API access token with customer read/write scopes."
            )
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Singleton instance used when create_app() is called without explicit settings
settings = Settings()
