"""
This module holds the runtime configuration and logging setup for DialysisLive.

Settings come from environment variables, optionally overridden by values from
Streamlit secrets (see `main.py`). Nothing here talks to the network.
"""
# dialysislive/config.py

import logging
import os
from dataclasses import dataclass

DEFAULT_API_URL = "https://api.dialysis.live/api/v1"
DEFAULT_TIMEOUT_SECONDS = 30.0
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

ENV_KEYS = {
    "api_base_url": "DIALYSIS_API_URL",
    "request_timeout": "DIALYSIS_API_TIMEOUT",
    "log_level": "DIALYSIS_LOG_LEVEL",
    "persist_tokens": "DIALYSIS_PERSIST_TOKENS",
    "storage_file": "DIALYSIS_STORAGE_FILE",
    "key_file": "DIALYSIS_KEY_FILE",
}


@dataclass
class Settings:
    """Runtime configuration for the client.

    Attributes:
        api_base_url: Base URL of the REST API, without a trailing slash.
        request_timeout: Per-request timeout in seconds.
        log_level: Name of the root logging level.
        persist_tokens: If True, auth tokens are kept in an encrypted file.
        storage_file: Path of the encrypted token file.
        key_file: Path of the Fernet key used to encrypt `storage_file`.
    """
    api_base_url: str = DEFAULT_API_URL
    request_timeout: float = DEFAULT_TIMEOUT_SECONDS
    log_level: str = "INFO"
    persist_tokens: bool = False
    storage_file: str = "session.dat"
    key_file: str = "secret.key"


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def load_settings(overrides=None, environ=None) -> Settings:
    """Builds a `Settings` from the environment and optional overrides.

    Args:
        overrides (dict, optional): Values keyed by field name or by environment
            variable name. They take precedence over the environment.
        environ (dict, optional): The environment to read. Defaults to `os.environ`.

    Returns:
        Settings: The resolved configuration.

    Raises:
        ValueError: If the timeout is not a positive number.
    """
    environ = os.environ if environ is None else environ
    overrides = overrides or {}
    raw = {}
    for field, env_key in ENV_KEYS.items():
        if field in overrides:
            raw[field] = overrides[field]
        elif env_key in overrides:
            raw[field] = overrides[env_key]
        elif env_key in environ:
            raw[field] = environ[env_key]

    settings = Settings()
    if raw.get("api_base_url"):
        settings.api_base_url = str(raw["api_base_url"]).rstrip("/")
    if "request_timeout" in raw:
        try:
            timeout = float(raw["request_timeout"])
        except (TypeError, ValueError):
            raise ValueError(f"Invalid request timeout: {raw['request_timeout']!r}")
        if timeout <= 0:
            raise ValueError("Request timeout must be positive.")
        settings.request_timeout = timeout
    if raw.get("log_level"):
        settings.log_level = str(raw["log_level"]).upper()
    if "persist_tokens" in raw:
        settings.persist_tokens = _as_bool(raw["persist_tokens"])
    if raw.get("storage_file"):
        settings.storage_file = str(raw["storage_file"])
    if raw.get("key_file"):
        settings.key_file = str(raw["key_file"])
    return settings


def configure_logging(level="INFO"):
    """Configures the root logger with a single stream handler."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(handler)

    logging.getLogger("urllib3").setLevel(logging.WARNING)
