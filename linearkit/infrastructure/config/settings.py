"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
configuration file (~/.linearkit/config.yaml).
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from linearkit.domain.models.common import (
    DEFAULT_CACHE_TTLS,
    DEFAULT_RETRY_POLICY,
    CacheTtls,
    RetryPolicy,
)

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".linearkit"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"

DEFAULT_RATE_LIMIT_MAX = 10
DEFAULT_RATE_LIMIT_WINDOW_MS = 1000
DEFAULT_LOG_LEVEL = "INFO"

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False
_loaded_from: Optional[Path] = None


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None, force: bool = False) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Test overrides
    2. Environment Variables (including those loaded from .env)
    3. YAML configuration file
    4. Default values passed by the getters

    A config_file other than the one loaded last triggers a reload.

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
        force: Reload even if this file was already loaded.
    """
    global _config, _loaded, _loaded_from
    if _loaded and not force and config_file == _loaded_from:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. Load from YAML file (Lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(yaml_config)
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. Load from .env file; override=False keeps real environment variables on top
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("Skipping .env file loading (no file found).")

    _loaded = True
    _loaded_from = config_file
    logger.debug("Configuration loading process completed.")


def _lookup(config: Dict[str, Any], dotted_key: str) -> Any:
    """Finds a dotted key either flat or as a path through nested mappings."""
    if dotted_key in config:
        return config[dotted_key]
    node: Any = config
    for part in dotted_key.split('.'):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def get_config(key: str, default: Any = None, env_var: Optional[str] = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration
    2. Environment variable (env_var, or the key upper-cased with dots as underscores)
    3. YAML config
    4. Default value

    Args:
        key: The configuration key, e.g. 'rate_limit.max'
        default: Default value if the key is not found
        env_var: Explicit environment variable name

    Returns:
        The configuration value (environment values are returned as strings)
    """
    if key in _test_config:
        return _test_config[key]

    env_key = env_var or key.upper().replace('.', '_')
    if env_key in os.environ:
        return os.environ[env_key]

    value = _lookup(_config, key)
    if value is not None:
        return value

    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


# --- Typed Accessors ---

def _parse_number(value: Any, fallback: float, name: str, cast: type = int) -> Any:
    """Parses a numeric setting, warning and falling back when it is malformed."""
    if value is None:
        return fallback
    if isinstance(value, bool):
        logger.warning(f"Invalid {name} value: {value}. Falling back to default {fallback}")
        return fallback
    try:
        parsed = cast(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid {name} value: {value}. Falling back to default {fallback}")
        return fallback
    if parsed < 0:
        logger.warning(f"Negative {name} value: {value}. Falling back to default {fallback}")
        return fallback
    return parsed


def _parse_bool(value: Any, fallback: bool, name: str) -> bool:
    if value is None:
        return fallback
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ('true', '1', 'yes', 'on'):
        return True
    if text in ('false', '0', 'no', 'off'):
        return False
    logger.warning(f"Unexpected value for {name}: '{value}'. Defaulting to {fallback}.")
    return fallback


def get_linear_api_key() -> Optional[str]:
    """Convenience function to get the Linear API key."""
    key = get_config('linear.api_key', env_var='LINEAR_API_KEY')
    return str(key) if key else None


def get_log_level() -> str:
    level = get_config('logging.level', DEFAULT_LOG_LEVEL, env_var='LOG_LEVEL')
    return str(level).upper()


def get_log_file() -> Optional[str]:
    log_file = get_config('logging.file', env_var='LOG_FILE')
    return str(log_file) if log_file else None


def get_rate_limit_max() -> int:
    value = get_config('rate_limit.max', env_var='RATE_LIMIT_MAX')
    parsed = _parse_number(value, DEFAULT_RATE_LIMIT_MAX, 'RATE_LIMIT_MAX')
    return parsed or DEFAULT_RATE_LIMIT_MAX


def get_rate_limit_window_seconds() -> float:
    value = get_config('rate_limit.window_ms', env_var='RATE_LIMIT_WINDOW_MS')
    window_ms = _parse_number(value, DEFAULT_RATE_LIMIT_WINDOW_MS, 'RATE_LIMIT_WINDOW_MS')
    return (window_ms or DEFAULT_RATE_LIMIT_WINDOW_MS) / 1000.0


def get_rate_limit_mutations() -> bool:
    """Whether create/update issue calls also go through the rate limiter."""
    value = get_config('rate_limit.mutations', env_var='RATE_LIMIT_MUTATIONS')
    return _parse_bool(value, False, 'RATE_LIMIT_MUTATIONS')


def get_retry_policy() -> RetryPolicy:
    d = DEFAULT_RETRY_POLICY
    return RetryPolicy(
        max_retries=_parse_number(get_config('retry.max_retries', env_var='RETRY_MAX_RETRIES'),
                                  d.max_retries, 'RETRY_MAX_RETRIES'),
        initial_delay=_parse_number(get_config('retry.initial_delay', env_var='RETRY_INITIAL_DELAY'),
                                    d.initial_delay, 'RETRY_INITIAL_DELAY', float),
        max_delay=_parse_number(get_config('retry.max_delay', env_var='RETRY_MAX_DELAY'),
                                d.max_delay, 'RETRY_MAX_DELAY', float),
        backoff_multiplier=_parse_number(get_config('retry.backoff_multiplier', env_var='RETRY_BACKOFF_MULTIPLIER'),
                                         d.backoff_multiplier, 'RETRY_BACKOFF_MULTIPLIER', float),
    )


def get_cache_ttls() -> CacheTtls:
    d = DEFAULT_CACHE_TTLS
    return CacheTtls(
        viewer=_parse_number(get_config('cache.viewer_ttl_seconds', env_var='CACHE_VIEWER_TTL_SECONDS'),
                             d.viewer, 'CACHE_VIEWER_TTL_SECONDS', float),
        teams=_parse_number(get_config('cache.teams_ttl_seconds', env_var='CACHE_TEAMS_TTL_SECONDS'),
                            d.teams, 'CACHE_TEAMS_TTL_SECONDS', float),
        workflow_states=_parse_number(
            get_config('cache.workflow_states_ttl_seconds', env_var='CACHE_WORKFLOW_STATES_TTL_SECONDS'),
            d.workflow_states, 'CACHE_WORKFLOW_STATES_TTL_SECONDS', float),
    )


def validate_configuration() -> List[str]:
    """Checks required settings.

    Returns:
        A list of problems; empty when the configuration is usable.
    """
    problems = []
    if not get_linear_api_key():
        problems.append("Missing LINEAR_API_KEY environment variable")
    for problem in problems:
        logger.error(problem)
    return problems


def redact(secret: Optional[str]) -> str:
    """Masks a credential for log output, keeping only its last four characters."""
    if not secret:
        return "<unset>"
    if len(secret) <= 8:
        return "****"
    return f"****{secret[-4:]}"


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
