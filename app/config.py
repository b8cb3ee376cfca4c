from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import field_validator, ValidationError
import logging
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    """
    Application Settings

    Required Environment Variables:
    - GEMINI_API_KEY
    - JWT_SECRET
    """

    PROJECT_NAME: str = "AgriScan Field Service"
    API_V1_STR: str = "/api/v1"

    # Gemini AI Configuration
    GEMINI_API_KEY: str
    GEMINI_MODEL: str = "gemini-2.5-flash"
    ANALYSIS_TIMEOUT_SECONDS: float = 60.0

    # Redis Configuration (history + user credentials)
    REDIS_URL: str = "redis://localhost:6379"
    STORAGE_NAMESPACE: str = "agriscan"
    HISTORY_LIMIT: int = 20

    # Thumbnail policy
    THUMBNAIL_MAX_SIZE: int = 150
    THUMBNAIL_QUALITY: int = 70

    # Camera
    CAMERA_INDEX: int = 0
    CAMERA_JPEG_QUALITY: int = 80

    # Weather (Open-Meteo)
    WEATHER_API_URL: str = "https://api.open-meteo.com/v1/forecast"
    WEATHER_TIMEOUT_SECONDS: float = 10.0
    DEFAULT_LATITUDE: Optional[float] = None
    DEFAULT_LONGITUDE: Optional[float] = None

    # Auth
    JWT_SECRET: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Application Configuration
    ENV_MODE: str = "dev"

    @field_validator('GEMINI_API_KEY', 'JWT_SECRET')
    @classmethod
    def validate_credentials(cls, v: str) -> str:
        """Ensure credentials are not empty"""
        if not v or v.strip() == '':
            raise ValueError("Credential cannot be empty")
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'
        extra = "ignore"
        case_sensitive = True


def get_settings() -> Settings:
    """
    Get application settings with detailed error reporting.

    Raises:
        SystemExit: If required environment variables are missing
    """
    try:
        settings = Settings()
        logger.info("✅ Configuration loaded successfully")
        logger.info(f"📊 Environment: {settings.ENV_MODE}")
        logger.info(f"🗄️  Redis: {settings.REDIS_URL} (namespace: {settings.STORAGE_NAMESPACE})")
        logger.info(f"🤖 Model: {settings.GEMINI_MODEL}")
        return settings
    except ValidationError as e:
        logger.error("❌ Configuration validation failed!")
        logger.error("=" * 60)
        logger.error("MISSING OR INVALID ENVIRONMENT VARIABLES:")
        logger.error("=" * 60)

        for error in e.errors():
            field = error['loc'][0]
            error_type = error['type']
            msg = error['msg']

            logger.error(f"  ❌ {field}")
            logger.error(f"     Type: {error_type}")
            logger.error(f"     Message: {msg}")
            logger.error("")

        logger.error("=" * 60)
        logger.error("REQUIRED ENVIRONMENT VARIABLES:")
        logger.error("=" * 60)
        logger.error("AI/ML:")
        logger.error("  - GEMINI_API_KEY")
        logger.error("")
        logger.error("Auth:")
        logger.error("  - JWT_SECRET")
        logger.error("=" * 60)
        logger.error("Please set these variables in your .env file or environment")
        logger.error("=" * 60)

        sys.exit(1)
    except Exception as e:
        logger.error(f"❌ Unexpected error loading configuration: {e}")
        sys.exit(1)


# Singleton settings instance
settings: Optional[Settings] = None

def init_settings() -> Settings:
    """Initialize settings (called once at startup)"""
    global settings
    if settings is None:
        settings = get_settings()
    return settings
