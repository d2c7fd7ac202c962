# flowengine/config.py
"""
Engine configuration.

Provider credentials and run limits are read from environment variables
(or a local ``.env`` file). A missing ``OPENAI_API_KEY`` or
``HUGGINGFACE_API_KEY`` is not fatal: the matching nodes fall back to
placeholder text instead.
"""
import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    # Provider credentials
    openai_api_key: str = ""
    huggingface_api_key: str = ""
    huggingface_api_url: str = "https://api-inference.huggingface.co/models"

    # Limits
    node_timeout_seconds: float = 60.0
    run_timeout_seconds: float = 300.0
    http_timeout_seconds: float = 30.0

    # OpenAI rate-limit backoff: 1s, 2s, ... between attempts
    rate_limit_max_attempts: int = 3
    rate_limit_base_delay: float = 1.0

    # generated text shorter than this is replaced by a placeholder
    min_response_length: int = 10

    # process independent ready nodes concurrently
    parallel_branches: bool = False


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str = None) -> None:
    level = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
