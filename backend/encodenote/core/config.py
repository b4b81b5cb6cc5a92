from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "encodenote"
    DATABASE_URL: str = "sqlite:///./encodenote.db"
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]
    MAX_BODY_BYTES: int = 50 * 1024 * 1024   # same ceiling as the JSON body limit clients were built against
    OUTBOX_SIZE: int = 256                   # queued events per live connection before dropping

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
