"""Configuration management using Pydantic settings."""
from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    project_name: str = Field(default="CISSP Mastery API", description="Application name")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Database settings
    database_url: str = Field(
        default="sqlite+aiosqlite:///./cissp_mastery.db",
        description="SQLAlchemy async database URL",
    )
    db_echo: bool = Field(default=False, description="Enable SQLAlchemy query logging")

    # Identity provider (JWT bearer tokens)
    jwt_secret_key: str = Field(..., description="Key used to verify identity tokens")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_audience: Optional[str] = Field(default=None, description="Expected token audience")

    # CORS settings
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Allowed CORS origins",
    )

    # Rate limiting
    rating_rate_limit: str = Field(default="120/minute", description="Rate limit for rating submissions")

    # Stripe
    stripe_secret_key: Optional[str] = Field(default=None, description="Stripe API key")
    stripe_webhook_secret: Optional[str] = Field(default=None, description="Stripe webhook signing secret")
    stripe_price_pro_monthly: Optional[str] = Field(default=None, description="Stripe price for pro_monthly")
    stripe_price_pro_yearly: Optional[str] = Field(default=None, description="Stripe price for pro_yearly")
    stripe_price_lifetime: Optional[str] = Field(default=None, description="Stripe price for lifetime access")
    frontend_url: str = Field(default="http://localhost:3000", description="Base URL for checkout redirects")


@lru_cache
def get_settings() -> Settings:
    return Settings()
