"""Unified configuration management for smart TV control.

Provides:
- YAML-based configuration with environment variable overrides
- Known-TV registry with device id as unique identifier
- Durable token storage
- Single source of truth for all constants
"""

from .constants import (
    # Control channel
    CONTROL_PORT,
    REST_PORT,
    CONTROL_CHANNEL,
    DEFAULT_APP_NAME,
    # Network
    SSDP_ADDR,
    SSDP_PORT,
    BROADCAST_ADDR,
    WOL_PORT,
    SAMSUNG_SEARCH_TARGET,
    # Probing
    UPNP_DESCRIPTION_PATHS,
    UPNP_PORTS,
    PROBE_PORTS,
    PROBE_ACCEPT_STATUS,
    # Timeouts
    PROBE_TIMEOUT,
    DEVICE_INFO_TIMEOUT,
    SCAN_TIMEOUT,
    HANDSHAKE_TIMEOUT,
    KEEPALIVE_INTERVAL,
    APP_DISCONNECT_DELAY,
    # Scan window
    SCAN_RANGE_START,
    SCAN_RANGE_END,
    # Token storage
    APP_TOKEN_KEY,
)

from .schema import (
    DEFAULT_CONFIG,
    DEFAULT_TV_CONFIG,
    deep_merge,
    validate_config,
    get_tv_by_id_or_alias,
    normalize_mac,
)

from .loader import (
    load_config,
    save_config,
    get_config,
    reload_config,
    get_config_path,
    get_tv_config,
    get_default_tv,
    list_tvs,
    add_tv,
    remember_tv,
    set_default_tv,
    CONFIG_SEARCH_PATHS,
)

from .storage import TokenStorage


__all__ = [
    # Constants
    "CONTROL_PORT",
    "REST_PORT",
    "CONTROL_CHANNEL",
    "DEFAULT_APP_NAME",
    "SSDP_ADDR",
    "SSDP_PORT",
    "BROADCAST_ADDR",
    "WOL_PORT",
    "SAMSUNG_SEARCH_TARGET",
    "UPNP_DESCRIPTION_PATHS",
    "UPNP_PORTS",
    "PROBE_PORTS",
    "PROBE_ACCEPT_STATUS",
    "PROBE_TIMEOUT",
    "DEVICE_INFO_TIMEOUT",
    "SCAN_TIMEOUT",
    "HANDSHAKE_TIMEOUT",
    "KEEPALIVE_INTERVAL",
    "APP_DISCONNECT_DELAY",
    "SCAN_RANGE_START",
    "SCAN_RANGE_END",
    "APP_TOKEN_KEY",
    # Schema
    "DEFAULT_CONFIG",
    "DEFAULT_TV_CONFIG",
    "deep_merge",
    "validate_config",
    "get_tv_by_id_or_alias",
    "normalize_mac",
    # Loader
    "load_config",
    "save_config",
    "get_config",
    "reload_config",
    "get_config_path",
    "get_tv_config",
    "get_default_tv",
    "list_tvs",
    "add_tv",
    "remember_tv",
    "set_default_tv",
    "CONFIG_SEARCH_PATHS",
    # Storage
    "TokenStorage",
]
