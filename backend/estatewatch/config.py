from pydantic_settings import BaseSettings
from typing import Optional
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./estatewatch.db"
    
    # Application
    SECRET_KEY: str = "your-super-secret-key"
    DEBUG: bool = True
    API_HOST: str = "localhost"
    API_PORT: int = 8000
    
    # Persistence: "json" (local file), "memory" or "database" (app_state table)
    STORAGE_BACKEND: str = "json"
    STORAGE_PATH: str = "./estatewatch_state.json"
    
    # Visitor lifecycle
    ESTATE_TIMEZONE: str = "UTC"  # Calendar day used for visit date checks
    ACCESS_CODE_PREFIX: str = "EW-"
    ACCESS_CODE_LENGTH: int = 8
    ACCESS_CODE_MAX_ATTEMPTS: int = 20
    
    # Sessions
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 12 * 60
    
    class Config:
        env_file = ".env"
        extra = "allow"


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()
