from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Process settings loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Watchdog config file, used when -c/--config is not given
    healthwatch_config: str = ""

    # Logging
    log_level: str = "INFO"


settings = Settings()
