"""Backend configuration with pydantic-settings."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # PostgreSQL
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "user"
    db_password: str = "password"
    db_name: str = "tasks_db"

    # Connection pool
    db_pool_min_size: int = 0  # 0 keeps pool creation from connecting eagerly
    db_pool_max_size: int = 10
    db_acquire_timeout: float = 60.0  # Seconds a request waits for a free connection
    db_command_timeout: float = 60.0  # Seconds per statement
    db_connect_timeout: float = 10.0
    db_probe_timeout: float = 2.0  # Seconds the health check waits for a connection

    # App
    environment: str = "development"
    log_level: str = "INFO"

    # Sentry (error monitoring)
    sentry_dsn: str = ""  # Optional: Set to your Sentry DSN for error tracking


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
