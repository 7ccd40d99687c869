"""
Configuration for formwright.

Settings come from an optional ``formwright.toml`` file, then environment
variables:

    [links]
    expires_in_hours = 168

    [signing]
    default_mode = "all"        # or "any"

    [cache]
    ttl_seconds = 3600

    [logging]
    level = "INFO"
    json = false
    dir = ".formwright/logs"

    [storage]
    db_path = ".formwright/formwright.db"

Environment overrides:
    FORMWRIGHT_ENV        development (default), test or production
    FORMWRIGHT_LOG_LEVEL  overrides [logging] level
    FORMWRIGHT_DB         overrides [storage] db_path
"""

from __future__ import annotations

import logging
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from formwright.core import ir
from formwright.core.compiler import DEFAULT_CACHE_TTL_SECONDS
from formwright.core.errors import FormwrightError
from formwright.runtime.access_links import DEFAULT_LINK_EXPIRY_HOURS

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "formwright.toml"
ENV_VAR = "FORMWRIGHT_ENV"
LOG_LEVEL_VAR = "FORMWRIGHT_LOG_LEVEL"
DB_VAR = "FORMWRIGHT_DB"


class FormwrightEnv(StrEnum):
    """Runtime environment values."""

    DEVELOPMENT = "development"
    TEST = "test"
    PRODUCTION = "production"


class ConfigError(FormwrightError):
    """Raised when the configuration file cannot be read or holds invalid values."""

    pass


@dataclass
class LinksConfig:
    expires_in_hours: float = DEFAULT_LINK_EXPIRY_HOURS


@dataclass
class SigningConfig:
    default_mode: ir.SigningMode = ir.SigningMode.ALL


@dataclass
class CacheConfig:
    ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS


@dataclass
class LoggingConfig:
    level: str = "INFO"
    json: bool = False
    dir: str | None = None


@dataclass
class StorageConfig:
    db_path: str = ".formwright/formwright.db"


@dataclass
class FormwrightConfig:
    env: FormwrightEnv = FormwrightEnv.DEVELOPMENT
    links: LinksConfig = field(default_factory=LinksConfig)
    signing: SigningConfig = field(default_factory=SigningConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    source: Path | None = None

    @property
    def is_production(self) -> bool:
        return self.env == FormwrightEnv.PRODUCTION


def get_env(environ: Mapping[str, str] | None = None) -> FormwrightEnv:
    """
    Get the current environment from FORMWRIGHT_ENV.

    Accepts the short forms ``dev``, ``prod`` and ``testing``. Unknown values
    fall back to development with a warning.
    """
    environ = os.environ if environ is None else environ
    value = environ.get(ENV_VAR, "").lower().strip()

    if value in ("production", "prod"):
        return FormwrightEnv.PRODUCTION
    if value in ("test", "testing"):
        return FormwrightEnv.TEST
    if value in ("development", "dev", ""):
        return FormwrightEnv.DEVELOPMENT

    logger.warning(
        "Unknown %s value '%s'. Valid values: development, test, production. "
        "Defaulting to development.",
        ENV_VAR,
        value,
    )
    return FormwrightEnv.DEVELOPMENT


def _parse_config(data: dict, source: Path | None) -> FormwrightConfig:
    links = data.get("links", {})
    signing = data.get("signing", {})
    cache = data.get("cache", {})
    logging_data = data.get("logging", {})
    storage = data.get("storage", {})

    try:
        signing_mode = ir.SigningMode(signing.get("default_mode", ir.SigningMode.ALL.value))
    except ValueError as exc:
        raise ConfigError(
            f"Invalid [signing] default_mode {signing.get('default_mode')!r}: "
            "expected 'all' or 'any'"
        ) from exc

    return FormwrightConfig(
        links=LinksConfig(
            expires_in_hours=float(links.get("expires_in_hours", DEFAULT_LINK_EXPIRY_HOURS))
        ),
        signing=SigningConfig(default_mode=signing_mode),
        cache=CacheConfig(
            ttl_seconds=float(cache.get("ttl_seconds", DEFAULT_CACHE_TTL_SECONDS))
        ),
        logging=LoggingConfig(
            level=str(logging_data.get("level", "INFO")).upper(),
            json=bool(logging_data.get("json", False)),
            dir=logging_data.get("dir"),
        ),
        storage=StorageConfig(
            db_path=storage.get("db_path", StorageConfig.db_path),
        ),
        source=source,
    )


def load_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> FormwrightConfig:
    """
    Load configuration.

    Args:
        path: Explicit config file; when None, ``formwright.toml`` in the
            current directory is used if it exists
        environ: Environment mapping (defaults to ``os.environ``)

    Raises:
        ConfigError: If an explicit path is missing or a file is not valid TOML
    """
    environ = os.environ if environ is None else environ

    if path is not None:
        config_path: Path | None = Path(path)
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
    else:
        candidate = Path.cwd() / CONFIG_FILE_NAME
        config_path = candidate if candidate.exists() else None

    data: dict = {}
    if config_path is not None:
        try:
            data = tomllib.loads(config_path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in {config_path}: {exc}") from exc

    config = _parse_config(data, config_path)
    config.env = get_env(environ)

    if level := environ.get(LOG_LEVEL_VAR):
        config.logging.level = level.upper()
    if db_path := environ.get(DB_VAR):
        config.storage.db_path = db_path

    return config
