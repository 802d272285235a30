from pydantic_settings import BaseSettings
from dotenv import load_dotenv
from pathlib import Path
import logging
import os

_logger = logging.getLogger(__name__)

# Look for .env in the project root (parent of the package directory)
project_dir = Path(__file__).parent.parent.parent
env_path = project_dir / ".env"

if env_path.exists():
    load_dotenv(env_path, override=True)
    _logger.info(f"Loaded .env file from: {env_path}")
else:
    # Fallback to current directory
    current_env = Path(".env")
    if current_env.exists():
        load_dotenv(current_env, override=True)
        _logger.info(f"Loaded .env file from: {current_env.absolute()}")


DEFAULT_DATABASE_URL = "sqlite:///./cardscheduler.db"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database - hosting platforms provide DATABASE_URL (uppercase)
    database_url: str = ""

    # API
    api_v1_prefix: str = "/api/v1"

    # CORS
    cors_origins: list[str] = ["*"]

    # Runtime
    environment: str = "production"
    log_level: str = "INFO"

    # Scheduling: "today" starts at local midnight in this timezone
    scheduler_timezone: str = "UTC"

    # Retries for a whole answer submission at the transaction boundary
    store_retry_attempts: int = 3

    # Due card bucket limits when the caller does not pass any
    default_new_cards_limit: int = 20
    default_learning_cards_limit: int = 100
    default_review_cards_limit: int = 100

    class Config:
        env_file = ".env"
        case_sensitive = False

    def __init__(self, **kwargs):
        # Ensure we read DATABASE_URL from environment (platforms provide it uppercase)
        if not kwargs.get("database_url"):
            kwargs["database_url"] = os.getenv("DATABASE_URL", "")
        super().__init__(**kwargs)

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("development", "dev", "local")


# Create settings instance
settings = Settings()

if not settings.database_url:
    _logger.warning(f"DATABASE_URL not set, falling back to {DEFAULT_DATABASE_URL}")
    settings.database_url = DEFAULT_DATABASE_URL
