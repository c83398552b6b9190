from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "LURKBOT_",
        "extra": "ignore",
    }

    # Telegram
    telegram_bot_token: str = ""
    poll_timeout: int = 20  # long-poll seconds passed to getUpdates
    poll_backoff: float = 5.0  # sleep after a failed poll
    command_timeout: float = 30.0  # upper bound for handling one message

    # Node registry (empty = built-in defaults)
    nodes_file: str = ""

    # Healthcheck probes
    probe_scheme: str = "http"
    probe_connect_timeout: float = 1.0
    probe_request_timeout: float = 1.0
    probe_max_concurrency: int = 16

    # Logging
    log_level: str = "INFO"


settings = Settings()
