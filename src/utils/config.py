import logging
from pydantic_settings import BaseSettings
from typing import Optional, List

logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    # AI Provider Configuration
    AI_PROVIDER: str = "openai"  # openai | anthropic (claude) | gemini (vertex)
    AI_TEMPERATURE: float = 0.7
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    ANTHROPIC_API_KEY: Optional[str] = None
    ANTHROPIC_MODEL: str = "claude-3-5-sonnet-20241022"
    ANTHROPIC_MAX_TOKENS: int = 4096
    GOOGLE_CLOUD_PROJECT: Optional[str] = None
    GOOGLE_CLOUD_LOCATION: str = "us-central1"
    GEMINI_MODEL: str = "gemini-2.5-flash"

    # Geocoding Configuration
    MAPBOX_ACCESS_TOKEN: Optional[str] = None
    NEXT_PUBLIC_MAPBOX_ACCESS_TOKEN: Optional[str] = None
    GOOGLE_MAPS_API_KEY: Optional[str] = None
    NEXT_PUBLIC_GOOGLE_MAPS_API_KEY: Optional[str] = None
    NOMINATIM_BASE_URL: str = "https://nominatim.openstreetmap.org"
    NOMINATIM_MIN_INTERVAL_SECONDS: float = 1.0
    GEOCODER_USER_AGENT: str = "AwesomeSOS/1.0 (https://awesomesos.com)"
    GEOCODING_TIMEOUT_SECONDS: float = 10.0

    # URL Fetching
    URL_FETCH_USER_AGENT: str = "Mozilla/5.0 (compatible; AwesomeSOS/1.0; +https://awesomesos.com)"
    URL_FETCH_TIMEOUT_SECONDS: float = 15.0
    URL_FETCH_MAX_BYTES: int = 5 * 1024 * 1024
    URL_CONTENT_MAX_CHARS: int = 10000

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./awesomesos.db"
    DATABASE_ECHO: bool = False

    # API Configuration
    API_VERSION: str = "1.0.0"
    DEBUG_MODE: bool = False
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CORS_ORIGINS: List[str] = ["*"]
    TRIPS_MAX_PAGE_SIZE: int = 100

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    model_config = {"env_file": ".env", "case_sensitive": True, "extra": "ignore"}

    @property
    def mapbox_token(self) -> Optional[str]:
        """Mapbox token, falling back to the public-prefixed variable"""
        return self.MAPBOX_ACCESS_TOKEN or self.NEXT_PUBLIC_MAPBOX_ACCESS_TOKEN

    @property
    def google_maps_key(self) -> Optional[str]:
        """Google Maps key, falling back to the public-prefixed variable"""
        return self.GOOGLE_MAPS_API_KEY or self.NEXT_PUBLIC_GOOGLE_MAPS_API_KEY

# Global settings instance
settings = Settings()

def get_settings() -> Settings:
    """Get the global settings instance"""
    return settings

def validate_settings(current: Optional[Settings] = None) -> bool:
    """Check that the selected AI provider has its credential configured.

    Geocoding credentials are optional; a missing one only disables that tier.
    """
    current = current or settings
    provider = (current.AI_PROVIDER or "openai").lower()

    required = {
        "anthropic": "ANTHROPIC_API_KEY",
        "claude": "ANTHROPIC_API_KEY",
        "gemini": "GOOGLE_CLOUD_PROJECT",
        "vertex": "GOOGLE_CLOUD_PROJECT",
    }.get(provider, "OPENAI_API_KEY")

    if not getattr(current, required):
        logger.warning(
            f"AI provider '{provider}' selected but {required} is not set; "
            "trip analysis and URL summaries will fail until it is configured"
        )
        return False

    if not current.mapbox_token and not current.google_maps_key:
        logger.info("No paid geocoding credentials configured; using OpenStreetMap only")

    return True
