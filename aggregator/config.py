"""
Configuration management using Pydantic settings.
Loads environment variables for provider endpoints, provider credentials and merge policy.
"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # Provider A Configuration (no auth, session is cookie based)
    provider_a_base_url: str = "https://provider-a.example.com/api"

    # Provider B Configuration
    provider_b_base_url: str = "https://provider-b.example.com"
    provider_b_client_id: str = ""  # Required for anonymous token creation
    provider_b_px_token: str = ""  # Optional bypass header sent on refresh
    provider_b_brand: str = ""  # Brand tag sent with auth requests

    # Provider C Configuration
    provider_c_base_url: str = "https://provider-c.example.com"
    provider_c_identity_url: str = "https://identity.provider-c.example.com"
    provider_c_default_auth_token: str = ""  # Sent with the guest login call
    provider_c_guest_password: str = ""  # Password used for guest accounts
    provider_c_experience_id: str = ""  # Sent as x-experience-id
    # Provider C tokens carry no expiry, so lifetimes are assumed
    provider_c_access_token_ttl_seconds: int = 3600
    provider_c_refresh_token_ttl_seconds: int = 30 * 24 * 3600

    # Application Configuration
    app_environment: str = "development"
    log_level: str = "INFO"

    # Transport Configuration
    http_timeout_seconds: float = 30.0
    max_retry_attempts: int = 3
    retry_backoff_multiplier: float = 2.0
    retry_initial_delay_seconds: float = 1.0

    # Location Lookups (autocomplete and address details)
    location_provider: str = "provider_a"

    # Merge Policy
    merge_category_denylist: list[str] = ["Picked for you"]  # Provider A personalization

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
settings = Settings()
