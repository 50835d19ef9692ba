"""
Application settings loaded from environment variables.
Uses pydantic-settings for validation and .env file support.
"""
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Hosted database / auth (PostgREST + edge functions)
    supabase_url: str = Field(
        default="http://localhost:54321",
        description="Base URL of the hosted backend (rest/v1 and functions/v1 live under it)"
    )
    supabase_anon_key: str = Field(
        default="",
        description="Public anon key, sent as apikey header"
    )
    supabase_service_key: str = Field(
        default="",
        description="Service-role key; only ever used server-side"
    )

    # JWT issued by the hosted auth product
    supabase_jwt_secret: str = Field(
        default="change-me-in-prod",
        description="Secret used to verify user access tokens"
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm"
    )
    jwt_audience: str = Field(
        default="authenticated",
        description="Expected 'aud' claim of user access tokens"
    )

    # Public third-party APIs
    postal_api_base_url: str = Field(
        default="https://api.postalpincode.in",
        description="India Post pincode lookup API"
    )
    geocoder_base_url: str = Field(
        default="https://nominatim.openstreetmap.org",
        description="Reverse geocoding API"
    )
    geocoder_user_agent: str = Field(
        default="hellofixo-backend/1.0",
        description="User-Agent sent to Nominatim (required by its usage policy)"
    )

    # Outbound HTTP policy
    http_timeout_seconds: float = Field(default=10.0, description="Per-request timeout")
    http_max_attempts: int = Field(default=3, description="Attempts per remote call, including the first")
    http_backoff_min_seconds: float = Field(default=0.5, description="Minimum backoff between attempts")
    http_backoff_max_seconds: float = Field(default=4.0, description="Maximum backoff between attempts")

    # Pricing
    gst_rate: float = Field(default=0.04, description="GST rate applied to the inspection fee")
    default_inspection_fee: float = Field(
        default=199.0,
        description="Inspection fee used when a category does not define one"
    )
    estimate_spread: float = Field(
        default=300.0,
        description="Half-width of the displayed per-problem price range"
    )

    # Default location (used before the customer picks one)
    default_pincode: str = Field(default="411001", description="Default pincode")
    default_city: str = Field(default="Pune", description="Default city / district")
    default_area_name: str = Field(default="Pune City", description="Default post office area")
    default_state: str = Field(default="Maharashtra", description="Default state")

    # Application
    app_name: str = Field(default="helloFixo Backend", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")
    cors_origins: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        description="Origins allowed to call the API from a browser"
    )


# Global settings instance
settings = Settings()
