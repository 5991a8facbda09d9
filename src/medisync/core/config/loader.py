"""
Configuration loader for YAML files and environment credentials.

Loads and validates configuration from YAML files into Pydantic models.
Credentials and start position overrides come from the environment.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .models import AppConfig


DEFAULT_CONFIG_PATH = Path("configs/app.yaml")

_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


class ConfigError(Exception):
    """Configuration loading or validation error."""

    def __init__(self, message: str, path: Path | None = None, details: str | None = None):
        self.path = path
        self.details = details
        super().__init__(message)


@dataclass(frozen=True)
class Credentials:
    """Portal login credentials."""

    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dictionary.

    Raises:
        ConfigError: If file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}", path=path)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML in {path}",
            path=path,
            details=str(e),
        ) from e
    except OSError as e:
        raise ConfigError(
            f"Cannot read {path}",
            path=path,
            details=str(e),
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Top level of {path} must be a mapping", path=path)
    return data


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR} and ${VAR:-default} in string values."""
    if isinstance(data, str):
        def replacer(match: re.Match[str]) -> str:
            return os.environ.get(match.group(1), match.group(2) or "")

        return _ENV_PATTERN.sub(replacer, data)
    if isinstance(data, dict):
        return {k: _expand_env_vars(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    return data


def load_app_config(
    path: Path | str | None = None,
    expand_env: bool = True,
) -> AppConfig:
    """Load application configuration from YAML file.

    Args:
        path: Path to app.yaml (default: configs/app.yaml)
        expand_env: Whether to expand environment variables

    Returns:
        Validated AppConfig instance

    Raises:
        ConfigError: If configuration is invalid
    """
    path = DEFAULT_CONFIG_PATH if path is None else Path(path)

    if not path.exists():
        return AppConfig()

    data = _load_yaml_file(path)

    if expand_env:
        data = _expand_env_vars(data)

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid app configuration in {path}",
            path=path,
            details=str(e),
        ) from e


def load_credentials() -> Credentials:
    """Read portal credentials from the environment.

    Missing values come back empty; the session controller rejects them.
    """
    return Credentials(
        username=os.environ.get("MEDIONLINE_USERNAME", ""),
        password=os.environ.get("MEDIONLINE_PASSWORD", ""),
    )


def start_position_from_env() -> tuple[int, int]:
    """Default (page_index, patient_index) from CURR_PAGE_INDEX / CURR_PATIENT_INDEX.

    Raises:
        ConfigError: If a value is not an integer or is out of range
    """
    values = []
    for name, default, minimum in (("CURR_PAGE_INDEX", "1", 1), ("CURR_PATIENT_INDEX", "0", 0)):
        raw = os.environ.get(name, default).strip() or default
        try:
            value = int(raw)
        except ValueError as e:
            raise ConfigError(f"{name} must be an integer, got {raw!r}") from e
        if value < minimum:
            raise ConfigError(f"{name} must be at least {minimum}, got {value}")
        values.append(value)
    return values[0], values[1]
