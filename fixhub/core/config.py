# fixhub/core/config.py
from typing import List, Optional
from pydantic import AnyUrl
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # App
    APP_ENV: str = "development"
    SECRET_KEY: str = "change-me"  # override in .env / secrets
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:5174"]

    # Tokens live for a week, like the web client expects
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # MongoDB
    MONGODB_URI: Optional[str] = "mongodb://localhost:27017/fixhub"
    MONGODB_DB: Optional[str] = "fixhub"

    # how many times accept re-reads the job after losing a compare-and-swap
    JOB_CAS_MAX_RETRIES: int = 5

    # Redis (enhancer cache)
    REDIS_URL: str = "redis://localhost:6379/0"
    ENHANCER_CACHE_TTL: int = 60 * 60 * 24

    # LLM
    LLM_API_KEY: Optional[str] = None
    # Adapter selection: 'mock' or 'http'
    LLM_ADAPTER: str = "mock"
    # Ollama-style endpoints used by the http adapter
    LLM_HTTP_URL: Optional[AnyUrl] = None
    LLM_CHAT_URL: Optional[AnyUrl] = None
    LLM_MODEL: str = "llama3"
    LLM_CHAT_MODEL: str = "gemma3:1b"
    LLM_TIMEOUT_SEC: int = 20
    LLM_RETRIES: int = 2
    LLM_BACKOFF_FACTOR: float = 0.5
    # allow fallback to mock adapter when HTTP adapter fails
    LLM_ALLOW_FALLBACK: bool = True

    # Pydantic v2 settings: read from .env file
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

# single shared settings instance
settings = Settings()
