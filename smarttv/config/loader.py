"""Configuration loading with YAML support and environment overrides."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .schema import (
    DEFAULT_CONFIG,
    DEFAULT_TV_CONFIG,
    deep_merge,
    get_tv_by_id_or_alias,
    normalize_mac,
)

_LOGGER = logging.getLogger(__name__)

# Config search paths (in priority order)
CONFIG_SEARCH_PATHS = [
    Path("config.yaml"),                                  # Current directory (primary)
    Path.home() / ".config" / "smarttv" / "config.yaml",  # User home
    Path("/etc/smarttv/config.yaml"),                     # System-wide
]

# Environment variable mappings
# Format: "ENV_VAR": ("section", "key", optional_converter)
ENV_MAPPINGS = {
    "SMARTTV_HOST": ("_default_tv", "host"),
    "SMARTTV_MAC": ("_default_tv", "mac"),
    "SMARTTV_NAME": ("_default_tv", "name"),
    "SMARTTV_APP_NAME": ("_root", "app_name"),
    "SMARTTV_SCAN_TIMEOUT": ("discovery", "scan_timeout", float),
    "SMARTTV_PROBE_TIMEOUT": ("discovery", "probe_timeout", float),
    "SMARTTV_HANDSHAKE_TIMEOUT": ("options", "handshake_timeout", float),
    "SMARTTV_KEEPALIVE_INTERVAL": ("options", "keepalive_interval", float),
    "SMARTTV_TOKEN_FILE": ("options", "token_file"),
    "SMARTTV_LOG_LEVEL": ("options", "log_level"),
}

# Module-level cached config
_cached_config: Optional[Dict] = None
_cached_path: Optional[Path] = None


def load_config(config_path: Optional[str] = None, use_cache: bool = True) -> Dict[str, Any]:
    """Load configuration from YAML file with environment overrides.

    Args:
        config_path: Explicit path to config file, or None to search
        use_cache: Use cached config if available

    Returns:
        Merged configuration dictionary
    """
    global _cached_config, _cached_path

    if use_cache and _cached_config is not None:
        return _cached_config

    config = _deep_copy_config(DEFAULT_CONFIG)
    loaded_path = None

    search_paths: List[Path] = []
    if config_path:
        search_paths.append(Path(config_path))
    search_paths.extend(CONFIG_SEARCH_PATHS)

    for path in search_paths:
        if path.suffix in ('.yaml', '.yml') and path.exists():
            try:
                with open(path) as f:
                    user_config = yaml.safe_load(f) or {}
                config = deep_merge(config, user_config)
                loaded_path = path
                _LOGGER.info("Loaded config from %s", path)
                break
            except (OSError, yaml.YAMLError) as e:
                _LOGGER.warning("Failed to load %s: %s", path, e)

    config = _apply_env_overrides(config)

    config["_loaded_from"] = str(loaded_path) if loaded_path else None

    _cached_config = config
    _cached_path = loaded_path

    return config


def _deep_copy_config(config: Dict) -> Dict:
    """Create a deep copy of the config dict."""
    result = {}
    for key, value in config.items():
        if isinstance(value, dict):
            result[key] = _deep_copy_config(value)
        elif isinstance(value, list):
            result[key] = value.copy()
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: Dict) -> Dict:
    """Apply environment variable overrides to config."""
    default_tv_overrides = {}

    for env_var, mapping in ENV_MAPPINGS.items():
        value = os.environ.get(env_var)
        if value is None:
            continue

        section = mapping[0]
        key = mapping[1]
        converter = mapping[2] if len(mapping) > 2 else str

        try:
            converted_value = converter(value)

            if section == "_default_tv":
                default_tv_overrides[key] = converted_value
            elif section == "_root":
                config[key] = converted_value
            elif section in config:
                config[section][key] = converted_value
            else:
                _LOGGER.warning("Unknown config section: %s", section)

        except (ValueError, KeyError) as e:
            _LOGGER.warning("Invalid env var %s=%s: %s", env_var, value, e)

    if default_tv_overrides:
        default_tv = config.get("default_tv")
        if default_tv and default_tv in config.get("tvs", {}):
            config["tvs"][default_tv].update(default_tv_overrides)
        elif default_tv_overrides.get("host"):
            host = default_tv_overrides["host"]
            config["tvs"][host] = deep_merge(
                _deep_copy_config(DEFAULT_TV_CONFIG),
                default_tv_overrides
            )
            config["default_tv"] = host

    return config


def save_config(config: Dict, path: Optional[Path] = None) -> bool:
    """Save configuration to YAML file.

    Args:
        config: Configuration dictionary to save
        path: Destination path, or None for the file it was loaded from
            (current directory if it came from defaults)

    Returns:
        True if saved successfully
    """
    if path is None:
        loaded_from = config.get("_loaded_from")
        path = Path(loaded_from) if loaded_from else Path("config.yaml")

    # Remove internal metadata before saving
    save_data = {k: v for k, v in config.items() if not k.startswith("_")}

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.safe_dump(save_data, f, default_flow_style=False, sort_keys=False)
        _LOGGER.info("Saved config to %s", path)
        return True
    except (OSError, yaml.YAMLError) as e:
        _LOGGER.error("Failed to save config: %s", e)
        return False


def get_config(use_cache: bool = True) -> Dict:
    """Get current configuration (cached)."""
    return load_config(use_cache=use_cache)


def reload_config() -> Dict:
    """Force reload configuration from disk."""
    global _cached_config, _cached_path
    _cached_config = None
    _cached_path = None
    return load_config(use_cache=False)


def get_config_path() -> Optional[Path]:
    """Get path of currently loaded config file."""
    load_config(use_cache=True)
    return _cached_path


def get_tv_config(tv_id: Optional[str] = None, config: Optional[Dict] = None) -> Optional[Dict]:
    """Get configuration for a specific TV.

    Args:
        tv_id: Device id or alias. If None, returns default TV.
        config: Configuration to search (defaults to the cached config)

    Returns:
        TV config dict if found, None otherwise
    """
    config = config if config is not None else get_config()
    tvs = config.get("tvs", {})

    if not tvs:
        return None

    if tv_id is None:
        default = config.get("default_tv")
        if default:
            return get_tv_by_id_or_alias(config, default)
        return next(iter(tvs.values()), None)

    return get_tv_by_id_or_alias(config, tv_id)


def get_default_tv() -> Optional[Dict]:
    """Get the default TV configuration."""
    return get_tv_config(None)


def list_tvs() -> List[Dict]:
    """List all configured TVs.

    Returns:
        List of dicts with device_id, is_default and the TV config
    """
    config = get_config()
    tvs = config.get("tvs", {})
    default_tv = config.get("default_tv")

    result = []
    for device_id, tv_config in tvs.items():
        entry = {
            "device_id": device_id,
            "is_default": device_id == default_tv or tv_config.get("alias") == default_tv,
            **tv_config,
        }
        result.append(entry)

    return result


def add_tv(device_id: str, host: str, alias: Optional[str] = None, **kwargs) -> bool:
    """Add a TV to the configuration.

    Args:
        device_id: Device id (discovery id, or IP when unknown)
        host: TV IP address
        alias: Friendly name for CLI
        **kwargs: Additional TV config fields

    Returns:
        True if added successfully
    """
    config = get_config()

    tv_config = _deep_copy_config(DEFAULT_TV_CONFIG)
    tv_config["host"] = host
    if alias:
        tv_config["alias"] = alias
    if kwargs.get("mac"):
        kwargs["mac"] = normalize_mac(kwargs["mac"])
    tv_config.update(kwargs)

    config["tvs"][device_id] = tv_config

    # Set as default if first TV
    if len(config["tvs"]) == 1:
        config["default_tv"] = alias or device_id

    return save_config(config)


def remember_tv(tv) -> bool:
    """Store a discovered TV in the known-TV registry.

    Args:
        tv: DiscoveredTV to remember

    Returns:
        True if saved successfully
    """
    return add_tv(
        tv.id,
        tv.host,
        name=tv.name,
        manufacturer=tv.manufacturer,
        mac=tv.mac_address,
    )


def set_default_tv(id_or_alias: str) -> bool:
    """Set the default TV.

    Args:
        id_or_alias: Device id or alias

    Returns:
        True if set successfully
    """
    config = get_config()

    if get_tv_by_id_or_alias(config, id_or_alias) is None:
        _LOGGER.error("TV not found: %s", id_or_alias)
        return False

    config["default_tv"] = id_or_alias
    return save_config(config)
