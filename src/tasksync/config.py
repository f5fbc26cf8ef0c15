"""Configuration management for tasksync."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

TASKSYNC_HOME = Path(os.environ.get("TASKSYNC_HOME", Path.home() / "tasksync"))
CONFIG_FILE = TASKSYNC_HOME / "config" / "tasksync.conf"
TOKEN_FILE = TASKSYNC_HOME / "config" / "token.json"
DATA_DIR = TASKSYNC_HOME / "data"

DEFAULT_API_BASE = "https://tasks.googleapis.com/tasks/v1"
SORT_CHOICES = ("position", "date", "alphabetical")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class Config:
    """tasksync configuration."""

    google_client_secret_file: str = ""
    api_base: str = DEFAULT_API_BASE
    cache_db: str = ""
    request_timeout: int = 30
    default_sort: str = "position"
    default_tab: str = "all"
    log_level: str = "WARNING"

    @property
    def cache_path(self) -> Path:
        """Resolved location of the SQLite cache file."""
        if self.cache_db:
            return Path(self.cache_db).expanduser()
        return DATA_DIR / "cache.db"


def _unquote(value: str) -> str:
    """Strip surrounding quotes, or an inline comment from unquoted values."""
    for quote in ('"', "'"):
        if value.startswith(quote):
            end_quote = value.find(quote, 1)
            return value[1:end_quote] if end_quote != -1 else value[1:]
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def load_config() -> Config:
    """Load configuration from tasksync.conf file."""
    config = Config()

    if not CONFIG_FILE.exists():
        return config

    for line in CONFIG_FILE.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _unquote(value.strip())

        match key:
            case "google_client_secret_file":
                config.google_client_secret_file = value
            case "api_base":
                config.api_base = value.rstrip("/")
            case "cache_db":
                config.cache_db = value
            case "request_timeout":
                try:
                    config.request_timeout = int(value)
                except ValueError:
                    logger.warning(f"Invalid REQUEST_TIMEOUT: {value}")
            case "default_sort":
                if value.lower() in SORT_CHOICES:
                    config.default_sort = value.lower()
                else:
                    logger.warning(f"Unknown DEFAULT_SORT: {value}")
            case "default_tab":
                config.default_tab = value or "all"
            case "log_level":
                if value.upper() in LOG_LEVELS:
                    config.log_level = value.upper()
                else:
                    logger.warning(f"Unknown LOG_LEVEL: {value}")

    return config
