"""
Configuration loading for binfetch.

Settings live in a YAML file under the platformdirs config directory. Every
key is optional; a missing file simply yields the defaults.
"""

import logging
import os
from typing import Any, Dict, Optional, Sequence

import platformdirs
import yaml

from binfetch.constants import (
    APP_NAME,
    CONFIG_ENV_VAR,
    CONFIG_FILE_NAME,
    DEFAULT_REQUEST_TIMEOUT,
)
from binfetch.exceptions import ConfigurationError
from binfetch.log_utils import logger

DEFAULT_CONFIG: Dict[str, Any] = {
    "GITHUB_TOKEN": None,
    "GITLAB_TOKEN": None,
    "ALLOW_ENV_TOKEN": True,
    "REQUEST_TIMEOUT": DEFAULT_REQUEST_TIMEOUT,
    "LOG_LEVEL": None,
    "LOG_DIR": None,
    "PROVIDER_HOSTS": {},
}


def get_config_file_path() -> str:
    """
    Return the configuration file path.

    The BINFETCH_CONFIG environment variable overrides the platformdirs location.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return override
    return os.path.join(platformdirs.user_config_dir(APP_NAME), CONFIG_FILE_NAME)


def _validate_config(config: Dict[str, Any], config_path: str) -> None:
    timeout = config.get("REQUEST_TIMEOUT")
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        raise ConfigurationError(
            "REQUEST_TIMEOUT must be a number of seconds",
            path=config_path,
            details=f"got {timeout!r}",
        )
    if timeout <= 0:
        raise ConfigurationError(
            "REQUEST_TIMEOUT must be positive", path=config_path, details=str(timeout)
        )

    hosts = config.get("PROVIDER_HOSTS")
    if not isinstance(hosts, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in hosts.items()
    ):
        raise ConfigurationError(
            "PROVIDER_HOSTS must map host names to provider ids", path=config_path
        )

    for key in ("GITHUB_TOKEN", "GITLAB_TOKEN", "LOG_DIR"):
        value = config.get(key)
        if value is not None and not isinstance(value, str):
            raise ConfigurationError(f"{key} must be a string", path=config_path)

    allow_env = config.get("ALLOW_ENV_TOKEN")
    if not isinstance(allow_env, bool):
        raise ConfigurationError(
            "ALLOW_ENV_TOKEN must be true or false",
            path=config_path,
            details=f"got {allow_env!r}",
        )

    level = config.get("LOG_LEVEL")
    if level is not None and not (
        isinstance(level, str)
        and isinstance(getattr(logging, level.upper(), None), int)
    ):
        raise ConfigurationError(
            "LOG_LEVEL must be a level name such as DEBUG or INFO",
            path=config_path,
            details=f"got {level!r}",
        )


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the binfetch configuration, merged over the defaults.

    Parameters:
        config_path (Optional[str]): Explicit file to read; defaults to get_config_file_path().

    Returns:
        Dict[str, Any]: The effective configuration. A missing file yields a copy of DEFAULT_CONFIG.

    Raises:
        ConfigurationError: If the file cannot be read, is not valid YAML, is not a mapping,
            or holds values of the wrong type.
    """
    path = config_path or get_config_file_path()
    config = dict(DEFAULT_CONFIG)
    config["PROVIDER_HOSTS"] = {}

    if not os.path.exists(path):
        logger.debug(f"No configuration file at {path}; using defaults")
        return config

    try:
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            "Configuration file is not valid YAML", path=path, details=str(e)
        ) from e
    except OSError as e:
        raise ConfigurationError(
            "Configuration file could not be read", path=path, details=str(e)
        ) from e

    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise ConfigurationError(
            "Configuration file must contain a mapping",
            path=path,
            details=f"got {type(loaded).__name__}",
        )

    config.update(loaded)
    if config.get("PROVIDER_HOSTS") is None:
        config["PROVIDER_HOSTS"] = {}
    _validate_config(config, path)
    logger.debug(f"Loaded configuration from {path}")
    return config


def get_effective_token(
    explicit_token: Optional[str],
    env_vars: Sequence[str],
    allow_env_token: bool = True,
) -> Optional[str]:
    """
    Determine the API token to use, preferring the explicit value over the environment.

    Parameters:
        explicit_token (Optional[str]): Token from configuration; surrounding whitespace is ignored.
        env_vars (Sequence[str]): Environment variables to consult, in order, when no explicit token is set.
        allow_env_token (bool): If False, the environment is never consulted.

    Returns:
        Optional[str]: The chosen token with surrounding whitespace removed, or `None` if no token is available.
    """
    candidate = (explicit_token or "").strip()
    if candidate:
        return candidate
    if not allow_env_token:
        return None
    for name in env_vars:
        env_token = (os.environ.get(name) or "").strip()
        if env_token:
            return env_token
    return None
