"""Settings for WebAgent, loaded from environment variables and an optional .env file."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

ENV_PREFIX = "WEBAGENT"

# Gemini REST endpoint
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

# Default models
DEFAULT_PLANNER_MODEL = "gemini-2.5-flash"
DEFAULT_AGENT_MODEL = "gemini-2.5-flash"

# Timeouts
DEFAULT_TIMEOUT = 30.0  # seconds

# Loop budget
DEFAULT_MAX_STEPS = 25

# Logging
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ConfigurationError(Exception):
    """Raised when required configuration is missing."""

    pass


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _first_env(*names: str) -> str | None:
    for name in names:
        value = os.getenv(name)
        if value is not None and value.strip():
            return value.strip()
    return None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


@dataclass(frozen=True)
class Settings:
    """Runtime settings."""

    api_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    planner_model: str = DEFAULT_PLANNER_MODEL
    agent_model: str = DEFAULT_AGENT_MODEL
    timeout: float = DEFAULT_TIMEOUT
    max_steps: int = DEFAULT_MAX_STEPS
    log_level: str | None = None

    def require_api_key(self) -> str:
        """Return the API key or raise ConfigurationError."""
        if not self.api_key:
            raise ConfigurationError("API_KEY environment variable is not set")
        return self.api_key


def load_settings(env_file: str | Path | None = None) -> Settings:
    """Read settings from the environment.

    A ``.env`` file (``env_file``, or the nearest one above the working
    directory) is loaded first; variables already set in the environment win.
    """
    load_dotenv(env_file or find_dotenv(usecwd=True), override=False)

    log_level = _first_env(_k("LOG_LEVEL"))
    return Settings(
        api_key=_first_env(_k("API_KEY"), "GEMINI_API_KEY", "API_KEY"),
        base_url=(os.getenv(_k("BASE_URL")) or DEFAULT_BASE_URL).rstrip("/"),
        planner_model=os.getenv(_k("PLANNER_MODEL")) or DEFAULT_PLANNER_MODEL,
        agent_model=os.getenv(_k("AGENT_MODEL")) or DEFAULT_AGENT_MODEL,
        timeout=_env_float(_k("TIMEOUT"), DEFAULT_TIMEOUT),
        max_steps=max(1, _env_int(_k("MAX_STEPS"), DEFAULT_MAX_STEPS)),
        log_level=log_level.upper() if log_level else None,
    )


def configure_logging(level: str | None, default: str = DEFAULT_LOG_LEVEL) -> int:
    """Configure root logging from a level name.

    Unknown names log a warning and fall back to ``default``.

    Returns:
        The numeric level that was applied
    """
    name = (level or default).upper()
    numeric = logging.getLevelName(name)
    if not isinstance(numeric, int):
        logger.warning(f"Ignoring invalid log level {level!r}, using {default}")
        numeric = logging.getLevelName(default.upper())

    logging.basicConfig(level=numeric, format=LOG_FORMAT)
    logging.getLogger().setLevel(numeric)
    return numeric


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or load the global settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Forget the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
