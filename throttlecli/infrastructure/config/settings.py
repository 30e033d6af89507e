"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a YAML file
(~/.throttlecli/config.yaml). Example YAML:

    retry:
      max_retries: 5
      backoff: exponential
      delay: 3
      max_delay: 60
    classifier:
      extra_patterns: ["TooManyRequests", "SlowDown"]
    logging:
      level: DEBUG
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from throttlecli.domain.errors import ConfigurationError, InvalidRetryPolicyError
from throttlecli.domain.models.policy import DEFAULT_MAX_RETRIES, RetryPolicy
from throttlecli.infrastructure.resilience.backoff import (
    BACKOFF_STRATEGIES,
    DEFAULT_RETRY_DELAY_S,
)

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".throttlecli"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "THROTTLECLI_"

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def load_configuration(
    config_file: Optional[Path] = None,
    env_file: Optional[Path] = None,
    force: bool = False,
) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values passed to get_config

    Args:
        config_file: Path to the YAML configuration file (DEFAULT_CONFIG_FILE if None).
        env_file: Path to the .env file (searches upwards from cwd if None).
        force: Reload even if configuration was already loaded.

    Raises:
        ConfigurationError: If the YAML file exists but cannot be parsed.
    """
    global _config, _loaded
    if _loaded and not force:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. YAML file (lowest priority)
    config_file = Path(config_file) if config_file else DEFAULT_CONFIG_FILE
    if config_file.is_file():
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                yaml_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(str(config_file), None, f"cannot read YAML: {e}") from e
        if isinstance(yaml_config, dict):
            _config.update(yaml_config)
            logger.info(f"Loaded configuration from YAML: {config_file}")
        elif yaml_config is not None:
            logger.warning(f"YAML config file {config_file} did not contain a mapping.")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file; override=False keeps real environment variables on top
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("No .env file found at or above current directory.")

    _loaded = True
    logger.debug("Configuration loading process completed.")


def reset_configuration() -> None:
    """Forgets loaded and test configuration so the next load starts fresh."""
    global _config, _test_config, _loaded
    _config = {}
    _test_config = {}
    _loaded = False


def env_var_name(key: str) -> str:
    """Maps a dotted key to its environment variable, e.g. retry.max_retries -> THROTTLECLI_RETRY_MAX_RETRIES."""
    return ENV_PREFIX + key.upper().replace('.', '_')


def _coerce(value: str) -> Any:
    lowered = value.strip().lower()
    if lowered == 'true':
        return True
    if lowered == 'false':
        return False
    try:
        if '.' in value:
            return float(value)
        return int(value)
    except (ValueError, TypeError):
        return value


def _lookup(data: Dict[str, Any], key: str) -> Any:
    """Resolves a dotted key against nested mappings; flat keys win."""
    if key in data:
        return data[key]
    node: Any = data
    for part in key.split('.'):
        if not isinstance(node, dict) or part not in node:
            raise KeyError(key)
        node = node[part]
    return node


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by dotted key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable (THROTTLECLI_ prefixed)
    3. YAML config
    4. Default value

    Args:
        key: The configuration key, e.g. 'retry.max_retries'
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = env_var_name(key)
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    try:
        return _lookup(_config, key)
    except KeyError:
        logger.debug(f"Config key '{key}' not found. Returning default: {default}")
        return default


def set_config(key: str, value: Any) -> None:
    """Sets a configuration value for the rest of the process.

    Args:
        key: Configuration key (e.g., 'retry.max_retries')
        value: Value to set
    """
    logger.debug(f"Setting config: {key} = {value}")
    _config[key] = value


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


# --- Typed Accessors ---

def get_retry_policy() -> RetryPolicy:
    """Builds the RetryPolicy from 'retry.max_retries'."""
    value = get_config('retry.max_retries', DEFAULT_MAX_RETRIES)
    try:
        return RetryPolicy(max_retries=value)
    except InvalidRetryPolicyError as e:
        raise ConfigurationError('retry.max_retries', value, str(e)) from e


def get_backoff_strategy() -> str:
    value = get_config('retry.backoff', 'exponential')
    strategy = str(value).strip().lower()
    if strategy not in BACKOFF_STRATEGIES:
        raise ConfigurationError(
            'retry.backoff', value, f"expected one of {', '.join(BACKOFF_STRATEGIES)}"
        )
    return strategy


def _get_seconds(key: str, default: Optional[float]) -> Optional[float]:
    value = get_config(key, default)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigurationError(key, value, "expected a number of seconds")
    try:
        seconds = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(key, value, "expected a number of seconds") from e
    if seconds < 0:
        raise ConfigurationError(key, value, "must not be negative")
    return seconds


def get_retry_delay() -> float:
    return _get_seconds('retry.delay', DEFAULT_RETRY_DELAY_S)


def get_max_delay() -> Optional[float]:
    return _get_seconds('retry.max_delay', None)


def get_extra_throttling_patterns() -> List[str]:
    """Extra message patterns from 'classifier.extra_patterns' (list or comma-separated string)."""
    value = get_config('classifier.extra_patterns', [])
    if isinstance(value, str):
        return [p.strip() for p in value.split(',') if p.strip()]
    if isinstance(value, list):
        return [str(p) for p in value]
    raise ConfigurationError('classifier.extra_patterns', value, "expected a list of patterns")


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
