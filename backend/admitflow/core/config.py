from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    APP_NAME: str = "AdmitFlow Patient Onboarding"
    VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite:///./admitflow.db"

    # Demo data is seeded on startup when enabled (idempotent)
    SEED_DEMO_DATA: bool = False

    # Onboarding rules
    PHONE_MIN_LENGTH: int = 10
    DEFAULT_ADMISSION_LOCATION: str = "General Admission - Room 204B"
    # When False, emergency registrations may skip identity fields and
    # placeholder values are stored instead
    EMERGENCY_COLLECT_IDENTITY: bool = True
    EMERGENCY_PLACEHOLDER_FIRST_NAME: str = "Emergency"
    EMERGENCY_PLACEHOLDER_LAST_NAME: str = "Patient"
    EMERGENCY_PLACEHOLDER_VALUE: str = "Unknown"

    ACTIVITY_FEED_LIMIT: int = 10

    # External document analysis provider
    DOCUMENT_ANALYSIS_API_URL: Optional[str] = None
    DOCUMENT_ANALYSIS_API_KEY: Optional[str] = None
    DOCUMENT_ANALYSIS_TIMEOUT: int = 30
    DOCUMENT_ANALYSIS_MOCK_MODE: bool = True  # Use mock responses when the provider is unavailable
    DOCUMENT_MAX_BYTES: int = 10 * 1024 * 1024

    class Config:
        env_file = ".env"


settings = Settings()
