"""Smart TV discovery and remote control library.

Finds TVs on the local network (SSDP service search and subnet probing
with brand fingerprinting) and drives Samsung TVs over their secure
WebSocket control channel.
"""

__version__ = "0.3.0"

from .apps import SAMSUNG_APPS, AppController, AppLauncher, RestAppLauncher, TVApp, get_app
from .async_client import AsyncSmartTV
from .classifier import DetectedTV, classify
from .config import (
    TokenStorage,
    get_config,
    load_config,
    save_config,
)
from .context import AppContext
from .discovery import DiscoveredTV, probe_host
from .dispatch import InlineDispatcher, SerialDispatcher
from .exceptions import (
    AccessDenied,
    ConnectionFailed,
    ConnectionLost,
    HandshakeTimeout,
    PairingTimeout,
    SmartTVError,
)
from .keys import KEY_CODES, TVCommand, get_command, get_key_code
from .manager import ConnectionManager, ConnectionStatus
from .remote import Capability, RemoteControl
from .scanner import NetworkScanner
from .search import Service, ServiceSearch, SsdpServiceSearch
from .session import ConnectionPhase, TVSession
from .wol import create_magic_packet, send_wol, wake_tv

__all__ = [
    "__version__",
    # Composition
    "AppContext",
    "AsyncSmartTV",
    # Discovery
    "DiscoveredTV",
    "DetectedTV",
    "classify",
    "probe_host",
    "NetworkScanner",
    "Service",
    "ServiceSearch",
    "SsdpServiceSearch",
    # Control
    "TVSession",
    "ConnectionPhase",
    "ConnectionManager",
    "ConnectionStatus",
    "RemoteControl",
    "Capability",
    "TVCommand",
    "KEY_CODES",
    "get_command",
    "get_key_code",
    # Apps
    "TVApp",
    "SAMSUNG_APPS",
    "get_app",
    "AppController",
    "AppLauncher",
    "RestAppLauncher",
    # Dispatch
    "SerialDispatcher",
    "InlineDispatcher",
    # Wake-on-LAN
    "create_magic_packet",
    "send_wol",
    "wake_tv",
    # Config
    "TokenStorage",
    "get_config",
    "load_config",
    "save_config",
    # Errors
    "SmartTVError",
    "AccessDenied",
    "PairingTimeout",
    "HandshakeTimeout",
    "ConnectionFailed",
    "ConnectionLost",
]
