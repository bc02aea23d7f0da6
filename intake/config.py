"""Engine configuration via environment variables."""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    # Logging
    DEBUG: bool = False
    LOG_LEVEL: str = "info"

    # Validation timing
    FIELD_DEBOUNCE_SECONDS: float = 0.3
    STEP_CACHE_SECONDS: float = 1.0

    # Rule tables (empty = bundled JSON files)
    CATEGORY_RULES_PATH: str = ""
    FEE_TABLE_PATH: str = ""

    # Licensing
    RENEWAL_WINDOW_MONTHS: int = 6
    DEFAULT_CURRENCY: str = "MGA"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
