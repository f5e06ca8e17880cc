from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    APP_NAME: str = "MedIQ Clinical Records"
    VERSION: str = "1.0.0"

    # Key-value storage
    STORAGE_NAMESPACE: str = "mediq"
    STORAGE_SCHEMA_VERSION: str = "1.0.0"
    STORAGE_BACKEND: str = "memory"  # "memory" or "sql"
    DATABASE_URL: str = "sqlite:///./mediq.db"
    STORAGE_QUOTA_BYTES: int = 5 * 1024 * 1024  # same ceiling browsers give local storage

    # Demo data is only written when explicitly enabled
    ENABLE_SAMPLE_DATA: bool = False

    # Remote patient/notes REST API
    REMOTE_API_URL: str = "http://localhost:8000/api/v1"
    REMOTE_API_TIMEOUT: int = 10

    # AI insights endpoint
    AI_API_URL: str = "http://localhost:8000/api/v1/openai"
    AI_MODEL: str = "gpt-4o-mini"
    AI_TIMEOUT: int = 30

    # Deepgram transcription
    DEEPGRAM_API_KEY: Optional[str] = None
    DEEPGRAM_API_URL: str = "https://api.deepgram.com/v1/listen"
    TRANSCRIPTION_TIMEOUT: int = 30

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"


settings = Settings()
