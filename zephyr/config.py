# zephyr/config.py
"""
Configuration loader for the Zephyr SDK.

Settings are resolved from (lowest to highest precedence):
- built-in defaults
- a named environment ("local", "staging", "production")
- an optional YAML file
- a .env file and process environment variables
- explicit keyword overrides
"""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:3001"
DEFAULT_TIMEOUT = 10.0

_dotenv_loaded = False


class ConfigError(Exception):
    """Raised when a configuration file cannot be read."""


@dataclass
class Environment:
    """SDK environment configuration."""
    name: str
    api_url: str


# Predefined environments
ENVIRONMENTS = {
    "local": Environment(name="local", api_url=DEFAULT_API_URL),
    "staging": Environment(name="staging", api_url="https://zmemory-staging.vercel.app"),
    "production": Environment(name="production", api_url="https://zmemory.vercel.app"),
}


class ZephyrConfig(BaseModel):
    """Resolved SDK configuration."""

    model_config = ConfigDict(extra="allow")

    environment: str = "local"
    api_url: str = DEFAULT_API_URL
    api_prefix: str = "/api"
    api_key: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT

    # Supabase session source
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None

    # Logging
    log_level: str = "INFO"

    @field_validator("api_url")
    @classmethod
    def strip_api_suffix(cls, value: str) -> str:
        value = value.rstrip("/")
        if value.endswith("/api"):
            value = value[: -len("/api")]
        return value

    @field_validator("api_prefix")
    @classmethod
    def normalize_prefix(cls, value: str) -> str:
        value = value.strip("/")
        return f"/{value}" if value else ""


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def _load_from_env() -> Dict[str, Any]:
    """Collect settings from environment variables."""
    values: Dict[str, Any] = {}

    api_url = os.environ.get("ZEPHYR_API_URL") or os.environ.get("EXPO_PUBLIC_API_URL")
    if api_url:
        values["api_url"] = api_url

    if os.environ.get("ZEPHYR_API_PREFIX") is not None:
        values["api_prefix"] = os.environ["ZEPHYR_API_PREFIX"]

    if os.environ.get("ZEPHYR_API_KEY"):
        values["api_key"] = os.environ["ZEPHYR_API_KEY"]

    if os.environ.get("ZEPHYR_TIMEOUT"):
        try:
            values["timeout"] = float(os.environ["ZEPHYR_TIMEOUT"])
        except ValueError:
            logger.warning(f"Ignoring invalid ZEPHYR_TIMEOUT: {os.environ['ZEPHYR_TIMEOUT']!r}")

    if os.environ.get("SUPABASE_URL"):
        values["supabase_url"] = os.environ["SUPABASE_URL"]

    supabase_key = os.environ.get("SUPABASE_KEY") or os.environ.get("SUPABASE_ANON_KEY")
    if supabase_key:
        values["supabase_key"] = supabase_key

    if os.environ.get("ZEPHYR_LOG_LEVEL"):
        values["log_level"] = os.environ["ZEPHYR_LOG_LEVEL"]

    return values


def _load_default_dotenv() -> None:
    """Load the nearest .env at or above the working directory, once per process."""
    global _dotenv_loaded
    if _dotenv_loaded:
        return
    _dotenv_loaded = True
    path = find_dotenv(usecwd=True)
    if path:
        logger.debug(f"Loading environment from {path}")
        load_dotenv(path, override=False)


def load_config(
    environment: Optional[str] = None,
    config_file: Optional[str] = None,
    env_file: Optional[str] = None,
    **overrides: Any,
) -> ZephyrConfig:
    """
    Build a ZephyrConfig.

    Args:
        environment: Named environment; defaults to ZEPHYR_ENV or "local"
        config_file: Optional YAML file with config keys
        env_file: Optional .env file loaded before reading the environment
        **overrides: Explicit values that win over every other source
    """
    if env_file:
        load_dotenv(env_file, override=False)
    else:
        _load_default_dotenv()

    environment = environment or os.environ.get("ZEPHYR_ENV", "local")

    values: Dict[str, Any] = {"environment": environment}
    if environment in ENVIRONMENTS:
        values["api_url"] = ENVIRONMENTS[environment].api_url
    else:
        logger.warning(f"Unknown environment '{environment}', using defaults")

    config_file = config_file or os.environ.get("ZEPHYR_CONFIG")
    if config_file:
        values.update(_load_yaml(Path(config_file)))

    values.update(_load_from_env())
    values.update({k: v for k, v in overrides.items() if v is not None})

    config = ZephyrConfig(**values)
    logger.debug(f"Loaded config for {config.environment} ({config.api_url})")
    return config


def configure_logging(level: Optional[str] = None) -> None:
    """Set the level of the zephyr package logger."""
    level = level or os.environ.get("ZEPHYR_LOG_LEVEL", "INFO")
    package_logger = logging.getLogger("zephyr")
    package_logger.setLevel(level.upper())
    if not package_logger.handlers and not logging.getLogger().handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        package_logger.addHandler(handler)
