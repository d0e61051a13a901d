"""Configuration schema, defaults, and validation."""

from typing import Any, Dict, List, Optional

from .constants import (
    CONTROL_PORT,
    DEFAULT_APP_NAME,
    DEVICE_INFO_TIMEOUT,
    HANDSHAKE_TIMEOUT,
    KEEPALIVE_INTERVAL,
    PROBE_TIMEOUT,
    SCAN_RANGE_END,
    SCAN_RANGE_START,
    SCAN_TIMEOUT,
)


# Default configuration for a single known TV
DEFAULT_TV_CONFIG: Dict[str, Any] = {
    "host": None,                # Required - TV IP address
    "port": CONTROL_PORT,        # 8002
    "alias": None,               # Friendly name for CLI (--tv alias)
    "name": None,                # Display name (auto-populated from discovery)
    "manufacturer": "Unknown",
    "mac": None,                 # For Wake-on-LAN
}


DEFAULT_CONFIG: Dict[str, Any] = {
    # Application identity presented to the TV during pairing
    "app_name": DEFAULT_APP_NAME,

    # Known TVs - keyed by device id (or IP until discovered)
    "tvs": {},

    # Default TV for CLI when --tv not specified (device id or alias)
    "default_tv": None,

    "discovery": {
        "scan_timeout": SCAN_TIMEOUT,
        "probe_timeout": PROBE_TIMEOUT,
        "device_info_timeout": DEVICE_INFO_TIMEOUT,
        "subnet_scan": True,
        "ssdp": True,
        "range_start": SCAN_RANGE_START,
        "range_end": SCAN_RANGE_END,
    },

    "options": {
        "handshake_timeout": HANDSHAKE_TIMEOUT,
        "keepalive_interval": KEEPALIVE_INTERVAL,
        "per_device_tokens": False,
        "text_encoding": "raw",
        "token_file": None,
        "log_level": "WARNING",
    },
}


def deep_merge(base: Dict, override: Dict) -> Dict:
    """Deep merge two dictionaries, override takes precedence.

    Args:
        base: Base dictionary
        override: Override dictionary (values take precedence)

    Returns:
        Merged dictionary
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        elif value is not None:  # Don't override with None
            result[key] = value
    return result


def validate_config(config: Dict) -> List[str]:
    """Validate configuration and return list of errors.

    Args:
        config: Configuration dictionary

    Returns:
        List of error messages (empty if valid)
    """
    errors = []

    for tv_id, tv_config in config.get("tvs", {}).items():
        if not tv_config.get("host"):
            errors.append(f"tvs.{tv_id}.host is required")

    discovery = config.get("discovery", {})
    start = discovery.get("range_start", SCAN_RANGE_START)
    end = discovery.get("range_end", SCAN_RANGE_END)
    if not (1 <= start <= end <= 254):
        errors.append("discovery.range_start/range_end must satisfy 1 <= start <= end <= 254")

    for key in ("scan_timeout", "probe_timeout", "device_info_timeout"):
        if discovery.get(key, 1) <= 0:
            errors.append(f"discovery.{key} must be positive")

    options = config.get("options", {})
    for key in ("handshake_timeout", "keepalive_interval"):
        if options.get(key, 1) <= 0:
            errors.append(f"options.{key} must be positive")

    if options.get("text_encoding", "raw") not in ("raw", "base64"):
        errors.append("options.text_encoding must be 'raw' or 'base64'")

    return errors


def get_tv_by_id_or_alias(config: Dict, id_or_alias: str) -> Optional[Dict]:
    """Get TV config by device id or alias.

    Args:
        config: Full configuration dictionary
        id_or_alias: Device id or alias to find

    Returns:
        TV config dict if found, None otherwise
    """
    tvs = config.get("tvs", {})

    if id_or_alias in tvs:
        return tvs[id_or_alias]

    for tv_config in tvs.values():
        if tv_config.get("alias") == id_or_alias:
            return tv_config

    return None


def normalize_mac(mac: str) -> str:
    """Convert a MAC address to colon-separated uppercase form.

    Args:
        mac: MAC with or without separators (e.g., "84c8a0c0ce8f")

    Returns:
        MAC address with colons (e.g., "84:C8:A0:C0:CE:8F"), or the input
        unchanged if it is not 12 hex digits long
    """
    clean = mac.replace(":", "").replace("-", "").upper()

    if len(clean) != 12:
        return mac

    return ":".join(clean[i:i+2] for i in range(0, 12, 2))
