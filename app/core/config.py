"""
Configuration module for the Travel Back Office.
Manages environment variables and application settings.
"""
from typing import List, Optional
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


DEFAULT_EXTERNAL_INQUIRIES_URL = "https://www.mustafatravel.com/api/inquiries"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # API Configuration
    app_name: str = "Travel Back Office"
    app_version: str = "1.0.0"
    debug: bool = Field(default=False)
    environment: str = Field(default="development")

    # MongoDB Configuration
    mongo_url: str = Field(...)
    mongo_db_name: str = Field(default="travel_backoffice")
    mongo_inquiries_collection: str = "inquiries"
    mongo_bookings_collection: str = "bookings"
    mongo_users_collection: str = "users"
    mongo_agents_collection: str = "agents"

    # JWT Configuration
    jwt_secret_key: str = Field(default="", validation_alias=AliasChoices("jwt_secret_key", "jwt_secret"))
    jwt_algorithm: str = Field(default="HS256")

    # External Inquiry Source
    external_inquiries_api_url: str = Field(
        default=DEFAULT_EXTERNAL_INQUIRIES_URL,
        validation_alias=AliasChoices("external_inquiries_api_url", "mustafa_travel_api_url"),
    )
    external_api_key: Optional[str] = Field(default=None)
    external_api_token: Optional[str] = Field(default=None)
    external_response_timeout: float = 10.0  # seconds per response
    external_total_timeout: float = 15.0  # overall deadline per attempt
    external_retries: int = 2

    # Outbound webhook
    inquiry_webhook_url: Optional[str] = Field(default=None)
    inquiry_webhook_secret: Optional[str] = Field(default=None)
    webhook_timeout: float = 10.0

    # Manual webhook forwarding
    admin_api_key: Optional[str] = Field(default=None)

    # CORS
    cors_origins: str = Field(default="")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def allowed_origins(self) -> List[str]:
        origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        return origins or ["*"]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
