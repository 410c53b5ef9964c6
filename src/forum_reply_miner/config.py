"""
Configuration for Forum Reply Miner.

Settings are read by pydantic-settings from three places, highest priority
first:

1. An optional JSON config file passed to ``load_settings`` (keys are the
   field names below, e.g. ``{"site_url": "...", "user_name": "..."}``, or
   the older ``Url``/``UserName``/``Port`` spelling listed in LEGACY_KEYS)
2. Environment variables with the ``MINER_`` prefix (``MINER_SITE_URL``)
3. A ``.env`` file in the working directory

``site_url`` and ``user_name`` are required; the process refuses to start
without them.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import orjson
from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError, ParseError
from .utils import parse_watermark

# -------------------------------------------------------
# DEFAULTS
# -------------------------------------------------------
DEFAULT_PORT = 8090

# Polling cadence while content keeps appearing / during quiet periods
SHORT_INTERVAL = 10 * 60
LONG_INTERVAL = 30 * 60

# After this many consecutive passes without new content, poll slowly
MAX_NO_NEW_SHORT_CRAWL = 3

# Fetch retry bound and pacing
MAX_ATTEMPTS = 5
RETRY_DELAY = 1.0
PAGE_DELAY = 1.0
REQUEST_TIMEOUT = 30.0

# The forum shows 100 replies per page
REPLIES_PER_PAGE = 100

# Keys of config.json files written for earlier deployments
LEGACY_KEYS = {
    "Url": "site_url",
    "UserName": "user_name",
    "CrawlStartTime": "crawl_start_time",
    "Port": "port",
    "EmailAddr": "email_addr",
    "EmailPort": "email_port",
    "EmailUser": "email_user",
    "EmailPassword": "email_password",
    "EmailTo": "email_to",
}


class Settings(BaseSettings):
    """Forum Reply Miner settings."""

    model_config = SettingsConfigDict(
        env_prefix="MINER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Crawl target ===
    site_url: str = ""
    user_name: str = ""
    crawl_start_time: Optional[datetime] = None
    data_dir: Path = Path(".")

    # === Query server ===
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT

    # === Scheduling ===
    short_interval: float = SHORT_INTERVAL
    long_interval: float = LONG_INTERVAL
    max_no_new_short_crawl: int = MAX_NO_NEW_SHORT_CRAWL

    # === Fetching ===
    max_attempts: int = MAX_ATTEMPTS
    retry_delay: float = RETRY_DELAY
    page_delay: float = PAGE_DELAY
    request_timeout: float = REQUEST_TIMEOUT
    replies_per_page: int = REPLIES_PER_PAGE

    # === Email notification (disabled when email_addr is empty) ===
    email_addr: str = ""
    email_port: int = 465
    email_user: str = ""
    email_password: str = ""
    email_to: str = ""

    @field_validator("crawl_start_time", mode="before")
    @classmethod
    def _parse_start_time(cls, value):
        if value in (None, ""):
            return None
        if isinstance(value, str):
            try:
                return parse_watermark(value)
            except ParseError as e:
                raise ValueError(str(e)) from e
        return value

    @field_validator("max_attempts", "replies_per_page", "max_no_new_short_crawl")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @property
    def user_dir(self) -> Path:
        """Directory holding the day buckets and watermark of the crawl target."""
        return self.data_dir / self.user_name

    @property
    def email_enabled(self) -> bool:
        return bool(self.email_addr)

    def validate_required(self) -> None:
        """
        Check the values the crawler cannot run without.

        Raises:
            ConfigurationError: If site_url or user_name is empty
        """
        missing = [name for name in ("site_url", "user_name") if not getattr(self, name)]
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}"
            )


def translate_legacy_keys(values: dict) -> dict:
    """
    Map older ``config.json`` keys (``Url``, ``UserName``, ``Port``...) to field names.

    An empty legacy value means "use the default", so it is dropped.
    Field names win when a file carries both spellings.
    """
    translated = {}
    for key, value in values.items():
        name = LEGACY_KEYS.get(key)
        if name is None:
            translated[key] = value
        elif value != "" and name not in values:
            translated[name] = value
    return translated


def load_settings(config_file: Optional[Union[str, Path]] = None, **overrides) -> Settings:
    """
    Build and validate the settings.

    Args:
        config_file: Optional JSON file with settings
        **overrides: Explicit values that win over every other source

    Returns:
        Validated Settings instance

    Raises:
        ConfigurationError: If the file cannot be read, a value is invalid,
            or a required value is missing
    """
    values = {}
    if config_file is not None:
        path = Path(config_file)
        try:
            values = orjson.loads(path.read_bytes())
        except (OSError, orjson.JSONDecodeError) as e:
            raise ConfigurationError(f"Could not read config file {path}: {e}") from e
        if not isinstance(values, dict):
            raise ConfigurationError(f"Config file {path} must contain a JSON object")
        values = translate_legacy_keys(values)

    values.update({key: value for key, value in overrides.items() if value is not None})

    try:
        settings = Settings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    settings.validate_required()
    return settings
