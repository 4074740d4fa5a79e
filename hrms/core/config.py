# hrms/core/config.py
from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "HRMS API"
    DATABASE_URL: str = "sqlite+aiosqlite:///./hrms.db"
    DB_ECHO: bool = False
    # Bounded pool for server databases (MySQL). SQLite ignores it.
    DB_POOL_SIZE: int = 10
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:5173"]

    class Config:
        env_file = ".env"
        # ignore unrelated keys in .env
        extra = "ignore"

settings = Settings()
