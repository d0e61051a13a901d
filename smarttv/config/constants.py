"""All constants for smart TV discovery and control - single source of truth.

Consolidates hardcoded values from:
- session.py (control channel port, path, timeouts)
- discovery.py / scanner.py (probe paths, ports, budgets)
- search.py (SSDP addresses, search target)
- apps.py (REST API port)
"""

# === Control Channel ===
CONTROL_PORT = 8002                # Secure WebSocket (wss) port
REST_PORT = 8001                   # Plain HTTP REST API port
CONTROL_CHANNEL = "samsung.remote.control"
DEFAULT_APP_NAME = "SmartTV Remote"

# === Network Addresses ===
SSDP_ADDR = "239.255.255.250"      # SSDP multicast address
SSDP_PORT = 1900                   # Standard SSDP port
BROADCAST_ADDR = "255.255.255.255"
WOL_PORT = 9

# === SSDP search target for Samsung remote control receivers ===
SAMSUNG_SEARCH_TARGET = "urn:samsung.com:device:RemoteControlReceiver:1"

# === UPnP description probing ===
UPNP_DESCRIPTION_PATHS = (
    "/description.xml",
    "/rootDesc.xml",
    "/upnp/desc.xml",
    "/device.xml",
)
UPNP_PORTS = (80, 49152)

# === Brand sniffing ports (probed in this order) ===
PROBE_PORTS = (8001, 3000, 80, 7001, 1925, 9080)
PROBE_ACCEPT_STATUS = (401, 404)     # Accepted besides any 2xx

# === Timeouts (seconds) ===
PROBE_TIMEOUT = 2.5
DEVICE_INFO_TIMEOUT = 5.0
SCAN_TIMEOUT = 6.0
HANDSHAKE_TIMEOUT = 10.0
KEEPALIVE_INTERVAL = 30.0
APP_DISCONNECT_DELAY = 2.0

# === Subnet scan window (last octet, inclusive) ===
SCAN_RANGE_START = 1
SCAN_RANGE_END = 254

# === Token storage ===
APP_TOKEN_KEY = "app"
