"""Control channel wire protocol for Samsung TVs.

Outbound messages are a closed set (KeyPress, InputString, Disconnect)
serialized by encode(); inbound frames are parsed by decode(), which
returns None for anything it does not recognise instead of failing.
"""

import base64
import ipaddress
import json
import logging
import ssl
from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import urlencode

from .config import CONTROL_CHANNEL, CONTROL_PORT

_LOGGER = logging.getLogger(__name__)

METHOD_REMOTE_CONTROL = "ms.remote.control"
METHOD_DISCONNECT = "ms.channel.disconnect"

EVENT_CONNECT = "ms.channel.connect"
EVENT_UNAUTHORIZED = "ms.channel.unauthorized"
EVENT_TIMEOUT = "ms.channel.timeOut"

# Address ranges where the TV's self-signed certificate is accepted
TRUSTED_NETWORKS = (
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
)


# Outbound messages
@dataclass(frozen=True)
class KeyPress:
    """Single remote key click."""
    key: str


@dataclass(frozen=True)
class InputString:
    """Text typed into the TV's active input field.

    With encoding "raw" the text travels as-is in Cmd; with "base64" Cmd
    carries the base64 text and DataOfCmd says so.
    """
    text: str
    encoding: str = "raw"


@dataclass(frozen=True)
class Disconnect:
    """Polite channel close notice."""


OutboundMessage = Union[KeyPress, InputString, Disconnect]


# Inbound events
@dataclass(frozen=True)
class ChannelConnect:
    """Pairing/connect acknowledgement."""
    token: Optional[str] = None


@dataclass(frozen=True)
class ChannelUnauthorized:
    """User denied the pairing prompt on the TV."""


@dataclass(frozen=True)
class ChannelTimeout:
    """Pairing prompt expired on the TV."""


InboundEvent = Union[ChannelConnect, ChannelUnauthorized, ChannelTimeout]


def encode(message: OutboundMessage) -> str:
    """Serialize an outbound message to its JSON frame."""
    if isinstance(message, KeyPress):
        payload = {
            "method": METHOD_REMOTE_CONTROL,
            "params": {
                "Cmd": "Click",
                "DataOfCmd": message.key,
                "Option": "false",
                "TypeOfRemote": "SendRemoteKey",
            },
        }
    elif isinstance(message, InputString):
        if message.encoding == "base64":
            cmd = base64.b64encode(message.text.encode("utf-8")).decode("utf-8")
            data_of_cmd = "base64"
        else:
            cmd = message.text
            data_of_cmd = "InputString"
        payload = {
            "method": METHOD_REMOTE_CONTROL,
            "params": {
                "Cmd": cmd,
                "DataOfCmd": data_of_cmd,
                "TypeOfRemote": "SendInputString",
            },
        }
    elif isinstance(message, Disconnect):
        payload = {"method": METHOD_DISCONNECT}
    else:
        raise TypeError(f"Unsupported message: {message!r}")

    return json.dumps(payload)


def _extract_token(data) -> Optional[str]:
    """Find the token in a connect acknowledgement's data block."""
    if not isinstance(data, dict):
        return None

    token = data.get("token")
    if isinstance(token, str) and token:
        return token

    clients = data.get("clients")
    if isinstance(clients, list):
        for client in clients:
            if not isinstance(client, dict):
                continue
            attributes = client.get("attributes")
            if isinstance(attributes, dict):
                token = attributes.get("token")
                if isinstance(token, str) and token:
                    return token

    return None


def decode(frame: Union[str, bytes]) -> Optional[InboundEvent]:
    """Parse an inbound frame.

    Args:
        frame: Raw text frame from the TV

    Returns:
        Parsed event, or None for malformed or unrecognised frames
    """
    try:
        if isinstance(frame, bytes):
            frame = frame.decode("utf-8")
        payload = json.loads(frame)
    except (UnicodeDecodeError, json.JSONDecodeError):
        _LOGGER.debug("Ignoring malformed frame: %.100r", frame)
        return None

    if not isinstance(payload, dict):
        return None

    event = payload.get("event")
    if event == EVENT_CONNECT:
        return ChannelConnect(token=_extract_token(payload.get("data")))
    if event == EVENT_UNAUTHORIZED:
        return ChannelUnauthorized()
    if event == EVENT_TIMEOUT:
        return ChannelTimeout()

    _LOGGER.debug("Ignoring event: %s", event)
    return None


def serialize_name(name: str) -> str:
    """Base64-encode the application name presented to the TV."""
    return base64.b64encode(name.encode("utf-8")).decode("utf-8")


def build_url(
    host: str,
    app_name: str,
    token: Optional[str] = None,
    port: int = CONTROL_PORT,
    channel: str = CONTROL_CHANNEL,
) -> str:
    """Build the control channel WebSocket URL.

    Args:
        host: TV IP address or hostname
        app_name: Application name shown in the TV's pairing prompt
        token: Previously issued token, if any
        port: Secure WebSocket port (default 8002)
        channel: Channel path

    Returns:
        wss:// URL
    """
    query = {"name": serialize_name(app_name)}
    if token:
        query["token"] = token
    return f"wss://{host}:{port}/api/v2/channels/{channel}?{urlencode(query)}"


def is_trusted_host(host: str) -> bool:
    """Check whether a host is in RFC1918 private space or loopback."""
    if host == "localhost":
        return True
    try:
        address = ipaddress.ip_address(host.strip("[]"))
    except ValueError:
        return False
    if address.is_loopback:
        return True
    return any(address in network for network in TRUSTED_NETWORKS)


def ssl_options(host: str) -> dict:
    """Get websocket sslopt for a host.

    TVs on the local network present a self-signed certificate, so chain
    validation is skipped for private and loopback addresses only. Any
    other host gets standard verification.
    """
    if is_trusted_host(host):
        return {"cert_reqs": ssl.CERT_NONE, "check_hostname": False}
    return {"cert_reqs": ssl.CERT_REQUIRED}
