"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
YAML configuration file (``~/.swiffcore/config.yaml``). Keys are dotted
(``autosave.debounce_delay``); the matching environment variable is the key
upper-cased with dots replaced by underscores and the ``SWIFF_`` prefix
(``SWIFF_AUTOSAVE_DEBOUNCE_DELAY``).
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".swiffcore"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "SWIFF_"

DEFAULT_DEBOUNCE_DELAY = 0.5
DEFAULT_HISTORY_LIMIT = 100
DEFAULT_RETRY_PROFILE = "default"
DEFAULT_NETWORK_TIMEOUT = 30.0
DEFAULT_STORE_DIR = DEFAULT_CONFIG_DIR / "store"
DEFAULT_PROBE_HOSTS = ["www.google.com", "www.apple.com", "www.cloudflare.com"]

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Turns nested YAML mappings into dotted keys."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def env_var_name(key: str) -> str:
    return f"{ENV_PREFIX}{key.upper().replace('.', '_')}"


def load_configuration(
    config_file: Path = DEFAULT_CONFIG_FILE,
    env_file: Optional[Path] = None,
    force: bool = False,
) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Test overrides (set_config_for_testing)
    2. Environment Variables
    3. .env file
    4. YAML configuration file
    5. Defaults passed to get_config

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
        force: Reload even if configuration was already loaded.
    """
    global _config, _loaded
    if _loaded and not force:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. YAML file (lowest priority)
    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file; override=False so real environment variables win
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("No .env file found at or above current directory.")

    # 3. Environment variables are read in get_config
    _loaded = True
    logger.debug("Configuration loading process completed.")


def _coerce(value: str) -> Any:
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def get_config(key: str, default: Any = None) -> Any:
    """Gets a configuration value by dotted key.

    Args:
        key: The configuration key, e.g. ``autosave.debounce_delay``.
        default: Default value if the key is not found.

    Returns:
        The configuration value; environment strings are coerced to bool,
        int or float where they look like one.
    """
    if key in _test_config:
        return _test_config[key]

    env_key = env_var_name(key)
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    if key in _config:
        return _config[key]

    logger.debug(f"Config key '{key}' not found. Returning default: {default}")
    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


def set_config(key: str, value: Any) -> None:
    """Sets a configuration value for the rest of the process.

    Args:
        key: Configuration key (e.g., 'logging.level')
        value: Value to set
    """
    _config[key] = value
    os.environ[env_var_name(key)] = str(value)
    logger.debug(f"Config set: {key}={value}")


# --- Typed Accessors ---

def _get_float(key: str, default: float) -> float:
    value = get_config(key, default)
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid number for '{key}': {value!r}. Using default {default}.")
        return default


def _get_int(key: str, default: int) -> int:
    value = get_config(key, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid integer for '{key}': {value!r}. Using default {default}.")
        return default


def get_debounce_delay() -> float:
    """Seconds a debounced save waits for further edits."""
    return _get_float("autosave.debounce_delay", DEFAULT_DEBOUNCE_DELAY)


def get_history_limit() -> int:
    return _get_int("tasks.history_limit", DEFAULT_HISTORY_LIMIT)


def get_retry_profile() -> str:
    return str(get_config("network.retry_profile", DEFAULT_RETRY_PROFILE))


def get_network_timeout() -> float:
    return _get_float("network.timeout", DEFAULT_NETWORK_TIMEOUT)


def get_store_dir() -> Path:
    return Path(str(get_config("storage.dir", DEFAULT_STORE_DIR))).expanduser()


def get_probe_hosts() -> List[str]:
    """Hosts tried by the connectivity probe; a comma-separated string is accepted."""
    hosts = get_config("network.probe_hosts", DEFAULT_PROBE_HOSTS)
    if isinstance(hosts, str):
        hosts = [host.strip() for host in hosts.split(",") if host.strip()]
    return list(hosts)


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """Sets configuration values that override every other source.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clears all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")


# Load configuration when the module is imported
load_configuration()
