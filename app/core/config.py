from pydantic_settings import BaseSettings
from typing import List, Optional
from datetime import time

class Settings(BaseSettings):
    # Application metadata
    PROJECT_NAME: str = "FieldFlow Dispatch"
    PROJECT_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # API settings
    API_V1_STR: str = "/api/v1"

    # Database settings
    DATABASE_URL: str

    # CORS settings
    BACKEND_CORS_ORIGINS: str = "http://localhost:5173,http://localhost:8000"

    # Redis settings
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = 0
    REDIS_SOCKET_TIMEOUT: int = 5  # seconds
    REDIS_CONNECT_TIMEOUT: int = 5  # seconds
    REDIS_RETRY_ON_TIMEOUT: bool = True

    # Feature flags
    ENABLE_REDIS: bool = True
    ENABLE_CACHING: bool = True

    # Google Maps API settings
    GOOGLE_MAPS_API_KEY: str
    GOOGLE_MAPS_BASE_URL: str = "https://maps.googleapis.com/maps/api/"
    GOOGLE_MAPS_TIMEOUT: int = 10  # seconds
    GEOCODE_REGION_SUFFIX: str = "UK"

    # Auth settings (bearer tokens issued by the identity provider)
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = None

    # Outbound webhooks (skipped when unset)
    WEBHOOK_END_JOB_URL: Optional[str] = None
    WEBHOOK_JOB_QUOTE_URL: Optional[str] = None
    WEBHOOK_TIMEOUT: int = 10  # seconds

    # Field rules
    SERVICE_TIMEZONE: str = "Europe/London"
    START_JOB_MAX_DISTANCE_M: float = 1000.0
    VERIFY_LOCATION_THRESHOLD_M: float = 500.0
    COINCIDENT_DEGREES: float = 0.0001

    # Route defaults
    ROUTE_DAY_START_TIME: time = time(8, 0)
    DEFAULT_JOB_DURATION_MINUTES: int = 120

    # Cache settings
    GEOCODE_CACHE_TTL: int = 30 * 86400  # 30 days in seconds

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse the CORS origins string into a list."""
        return [origin.strip() for origin in self.BACKEND_CORS_ORIGINS.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env files

settings = Settings()
