"""Connection settings for the CLI.

Merges defaults, an optional YAML/JSON config file, environment variables
and CLI flags. Precedence (highest first): CLI flags, environment, config
file, defaults.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import yaml

from constants import Constants

logger = logging.getLogger(__name__)

CONFIG_KEYS = ("api_url", "username", "password", "timeout")


@dataclass
class Settings:
    """Resolved connection settings."""
    api_url: str = Constants.DEFAULT_API_URL
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: float = Constants.REQUEST_TIMEOUT


def load_config(path: str) -> Dict[str, Any]:
    """Load a configuration file (YAML, YML, or JSON).

    Raises:
        OSError: if the file cannot be read.
        ValueError: if the file is not a mapping or cannot be parsed.
    """
    with open(path, encoding="utf-8") as fh:
        if path.lower().endswith(".json"):
            try:
                data = json.load(fh)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
        else:
            try:
                data = yaml.safe_load(fh) or {}
            except yaml.YAMLError as exc:
                raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")

    unknown = sorted(set(data) - set(CONFIG_KEYS))
    if unknown:
        logger.warning("Ignoring unknown configuration keys in %s: %s", path, ", ".join(unknown))
    return {key: data[key] for key in CONFIG_KEYS if data.get(key) is not None}


def _from_environment(environ: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for key, env_name in (
        ("api_url", Constants.ENV_API_URL),
        ("username", Constants.ENV_USERNAME),
        ("password", Constants.ENV_PASSWORD),
    ):
        value = environ.get(env_name)
        if value and value.strip():
            values[key] = value.strip()
    return values


def _from_args(args) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for key, dest in (
        ("api_url", "API_URL"),
        ("username", "USERNAME"),
        ("password", "PASSWORD"),
        ("timeout", "TIMEOUT"),
    ):
        value = getattr(args, dest, None)
        if value is not None:
            values[key] = value
    return values


def build_settings(args, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Merge all configuration sources into Settings.

    Raises:
        OSError, ValueError: if the config file named by ``args.CONFIG`` is
            unreadable or malformed, or the timeout is not a positive number.
    """
    merged: Dict[str, Any] = {}
    config_path = getattr(args, "CONFIG", None)
    if config_path:
        merged.update(load_config(config_path))
    merged.update(_from_environment(os.environ if environ is None else environ))
    merged.update(_from_args(args))

    settings = Settings(**merged)
    try:
        settings.timeout = float(settings.timeout)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid timeout: {settings.timeout!r}") from exc
    if settings.timeout <= 0:
        raise ValueError(f"Timeout must be positive, got {settings.timeout}")
    return settings
