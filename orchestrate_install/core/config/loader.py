"""
Configuration loader — reads ORCH_* environment variables and the
optional catalog YAML into validated models.

Precedence for every setting:
    CLI flag  >  ORCH_* env var  >  built-in default
(the CLI applies its flags on top of what ``load_settings`` returns).
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "ORCH_"
APP_DIR_NAME = "orchestrate-install"

DEFAULT_CACHE_TTL = 3600       # 1 hour
DEFAULT_STRATEGY_TIMEOUT = 600  # apt installs of desktop apps can be slow
DEFAULT_INSTALL_ATTEMPTS = 3

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


class ConfigError(Exception):
    """Raised when settings or the catalog file are invalid."""


class Settings(BaseModel):
    """Effective runtime settings for one invocation."""

    debug: bool = False
    log_level: str = "WARNING"
    log_file: str | None = None
    cache_dir: Path
    cache_ttl_seconds: int = Field(default=DEFAULT_CACHE_TTL, ge=0)
    strategy_timeout: int = Field(default=DEFAULT_STRATEGY_TIMEOUT, ge=1)
    install_attempts: int = Field(default=DEFAULT_INSTALL_ATTEMPTS, ge=1)
    refresh_indexes: bool = True
    catalog_path: Path | None = None


class RecipeModel(BaseModel):
    """Schema of one catalog recipe read from YAML."""

    label: str = ""
    category: str = Field(default="system", pattern=r"^(desktop|system|any)$")
    cli: str | None = None
    apt: str | None = None
    snap: str | None = None
    classic: bool = False
    manual: list[str] | None = None
    manual_needs_sudo: bool = False


def default_cache_dir(environ: Mapping[str, str] | None = None) -> Path:
    """``$XDG_CACHE_HOME/orchestrate-install`` or ``~/.cache/orchestrate-install``."""
    env = os.environ if environ is None else environ
    base = env.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(base).expanduser() / APP_DIR_NAME


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ConfigError(f"{name} must be a boolean (1/0, true/false), got {raw!r}")


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from ORCH_* environment variables.

    Args:
        environ: Environment mapping (default: ``os.environ``).

    Returns:
        Validated Settings.

    Raises:
        ConfigError: If a variable has an unparseable or out-of-range value.
    """
    env = os.environ if environ is None else environ
    data: dict[str, Any] = {}

    if (raw := env.get(f"{ENV_PREFIX}DEBUG")) is not None:
        data["debug"] = _parse_bool(f"{ENV_PREFIX}DEBUG", raw)
    if raw := env.get(f"{ENV_PREFIX}LOG_LEVEL"):
        data["log_level"] = raw.strip().upper()
    if raw := env.get(f"{ENV_PREFIX}LOG_FILE"):
        data["log_file"] = raw
    if raw := env.get(f"{ENV_PREFIX}CACHE_DIR"):
        data["cache_dir"] = Path(raw).expanduser()
    else:
        data["cache_dir"] = default_cache_dir(env)
    if raw := env.get(f"{ENV_PREFIX}CACHE_TTL"):
        data["cache_ttl_seconds"] = _parse_int(f"{ENV_PREFIX}CACHE_TTL", raw)
    if raw := env.get(f"{ENV_PREFIX}STRATEGY_TIMEOUT"):
        data["strategy_timeout"] = _parse_int(f"{ENV_PREFIX}STRATEGY_TIMEOUT", raw)
    if raw := env.get(f"{ENV_PREFIX}INSTALL_ATTEMPTS"):
        data["install_attempts"] = _parse_int(f"{ENV_PREFIX}INSTALL_ATTEMPTS", raw)
    if (raw := env.get(f"{ENV_PREFIX}APT_UPDATE")) is not None:
        data["refresh_indexes"] = _parse_bool(f"{ENV_PREFIX}APT_UPDATE", raw)
    if raw := env.get(f"{ENV_PREFIX}CATALOG"):
        data["catalog_path"] = Path(raw).expanduser()

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e


def load_catalog(path: Path) -> dict[str, dict]:
    """Load extra package recipes from a YAML mapping.

    The file maps package ids to recipes::

        postman:
          category: desktop
          snap: postman
        httpie:
          apt: httpie

    Args:
        path: Path to the YAML file.

    Returns:
        Package id → recipe dict (same shape as ``PACKAGE_CATALOG``).

    Raises:
        ConfigError: If the file is missing, unreadable or invalid.
    """
    if not path.is_file():
        raise ConfigError(f"Catalog file not found: {path}")

    logger.debug("Loading catalog from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    recipes: dict[str, dict] = {}
    for package_id, body in data.items():
        try:
            recipe = RecipeModel.model_validate(body or {})
        except ValidationError as e:
            raise ConfigError(f"Invalid recipe '{package_id}' in {path}: {e}") from e
        recipes[str(package_id)] = recipe.model_dump(exclude_none=True)

    logger.info("Loaded %d catalog recipes from %s", len(recipes), path)
    return recipes
