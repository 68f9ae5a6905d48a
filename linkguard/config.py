"""Application settings from environment variables."""

from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

# Load environment variables
load_dotenv()


class Settings(BaseSettings):
    """Application settings from environment."""

    # YouTube Data API keys, comma-separated for rotation
    youtube_api_keys: str = ""
    youtube_api_key: str = ""
    youtube_api_base: str = "https://www.googleapis.com/youtube/v3"
    credential_cooldown_seconds: float = 24 * 60 * 60

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""

    # Configuration
    log_level: str = "INFO"

    # Batch processing
    batch_size: int = 50
    max_parallel_batches: int = 100
    links_concurrency: int = 20

    # Link checking
    link_timeout_seconds: float = 15.0
    link_max_retries: int = 2
    link_retry_delay_seconds: float = 2.0

    # Job queue
    queue_max_attempts: int = 3
    queue_backoff_seconds: float = 5.0
    queue_poll_interval_seconds: float = 2.0
    run_worker_in_app: bool = False

    model_config = {"env_file": ".env", "extra": "ignore"}

    def api_keys(self) -> List[str]:
        """Return the configured API keys, preferring the rotation list."""
        raw = self.youtube_api_keys or self.youtube_api_key
        return [key.strip() for key in raw.split(",") if key.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
