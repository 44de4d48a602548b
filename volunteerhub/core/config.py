from pydantic_settings import BaseSettings
from typing import Optional
import logging

class Settings(BaseSettings):
    # Database
    DATABASE_URL: Optional[str] = None
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "volunteerhub"
    DB_PASSWORD: str = "volunteerhub_password"
    DB_NAME: str = "volunteerhub_db"
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # Transactions
    TRANSACTION_ISOLATION_LEVEL: str = "SERIALIZABLE"  # ignored for SQLite (BEGIN IMMEDIATE)
    SQLITE_BUSY_TIMEOUT_SECONDS: float = 15.0

    # Retry policy for the coordinator
    CONFLICT_MAX_RETRIES: int = 3
    CONFLICT_BACKOFF_SECONDS: float = 0.05
    STORAGE_MAX_RETRIES: int = 1

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for entry points (scripts, workers)."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
