"""Network probing for smart TVs.

Per-host probe chain used by the subnet scan:
- UPnP device description fetch (friendlyName/manufacturer/modelName/deviceType)
- Plain HTTP GET on common TV control ports, fed into the brand classifier

Every probe failure means "no TV at this host" and is never raised.
"""

import ipaddress
import logging
import re
import socket
import threading
import urllib.error
import urllib.request
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from .classifier import UNKNOWN, classify
from .config import (
    PROBE_ACCEPT_STATUS,
    PROBE_PORTS,
    PROBE_TIMEOUT,
    SCAN_RANGE_END,
    SCAN_RANGE_START,
    UPNP_DESCRIPTION_PATHS,
    UPNP_PORTS,
)

_LOGGER = logging.getLogger(__name__)

# Max bytes of a probe response kept for classification
BODY_SAMPLE_SIZE = 16384

# deviceType / friendlyName hints for TV-like UPnP devices
TV_DEVICE_HINTS = ("mediarenderer", "tv", "television", "display", "screen", "dial")


@dataclass
class DiscoveredTV:
    """TV found on the network."""

    id: str
    name: str
    manufacturer: str = UNKNOWN
    ip_address: str = ""
    model_name: Optional[str] = None
    mac_address: Optional[str] = None
    source: str = "probe"  # sdk, upnp, probe
    raw_data: Dict = field(default_factory=dict, compare=False, repr=False)

    @property
    def host(self) -> str:
        """Host part of ip_address (which may be a full service URI)."""
        if "://" in self.ip_address:
            return urlparse(self.ip_address).hostname or self.ip_address
        host, _, port = self.ip_address.rpartition(":")
        if host and port.isdigit() and ":" not in host:
            return host
        return self.ip_address

    @property
    def port(self) -> Optional[int]:
        """Port part of ip_address, if it carries one."""
        if "://" in self.ip_address:
            return urlparse(self.ip_address).port
        host, _, port = self.ip_address.rpartition(":")
        if host and port.isdigit() and ":" not in host:
            return int(port)
        return None

    def same_device(self, other: "DiscoveredTV") -> bool:
        """Check identity by id or address."""
        return self.id == other.id or self.ip_address == other.ip_address


@dataclass
class HttpResponse:
    """Captured HTTP response for classification."""

    status: int
    headers: Dict[str, str]
    body: str


Fetcher = Callable[[str, float], Optional[HttpResponse]]


def http_get(url: str, timeout: float = PROBE_TIMEOUT) -> Optional[HttpResponse]:
    """Fetch a URL, keeping error responses.

    Args:
        url: URL to fetch
        timeout: Request timeout in seconds

    Returns:
        HttpResponse (including 4xx/5xx), or None on network failure
    """
    request = urllib.request.Request(url, headers={"User-Agent": "smarttv-remote"})
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            body = response.read(BODY_SAMPLE_SIZE)
            return HttpResponse(
                status=response.status,
                headers=dict(response.headers.items()),
                body=body.decode("utf-8", errors="ignore"),
            )
    except urllib.error.HTTPError as e:
        try:
            body = e.read(BODY_SAMPLE_SIZE).decode("utf-8", errors="ignore")
        except OSError:
            body = ""
        return HttpResponse(
            status=e.code,
            headers=dict(e.headers.items()) if e.headers else {},
            body=body,
        )
    except (urllib.error.URLError, OSError, ValueError) as e:
        _LOGGER.debug("No response from %s: %s", url, e)
        return None


def _extract_tag(xml: str, tag: str) -> Optional[str]:
    """Get the text of the first <tag> element, ignoring namespaces."""
    match = re.search(
        r"<(?:\w+:)?%s\b[^>]*>(.*?)</(?:\w+:)?%s>" % (tag, tag),
        xml,
        re.IGNORECASE | re.DOTALL,
    )
    if not match:
        return None
    value = match.group(1).strip()
    return value or None


def parse_upnp_description(xml: str) -> Dict[str, Optional[str]]:
    """Extract device fields from a UPnP device description.

    Tag extraction is used instead of a strict XML parser because TVs
    often serve slightly malformed documents.

    Returns:
        Dict with friendlyName, manufacturer, modelName, deviceType, UDN
    """
    return {
        tag: _extract_tag(xml, tag)
        for tag in ("friendlyName", "manufacturer", "modelName", "deviceType", "UDN")
    }


def looks_like_tv(info: Dict[str, Optional[str]]) -> bool:
    """Check whether a UPnP description suggests a TV or media renderer."""
    device_type = (info.get("deviceType") or "").lower()
    name = (info.get("friendlyName") or "").lower()
    if "mediarenderer" in device_type:
        return True
    for hint in TV_DEVICE_HINTS:
        if re.search(r"\b%s\b" % hint, name) or re.search(r"\b%s\b" % hint, device_type):
            return True
    return False


def probe_upnp(
    ip: str,
    timeout: float = PROBE_TIMEOUT,
    fetch: Fetcher = http_get,
    cancel: Optional[threading.Event] = None,
) -> Optional[DiscoveredTV]:
    """Probe a host for a UPnP TV description.

    Args:
        ip: Target IP address
        timeout: Per-request timeout in seconds
        fetch: HTTP fetch function
        cancel: Stop early when set

    Returns:
        DiscoveredTV if a TV-like description was found, None otherwise
    """
    for port in UPNP_PORTS:
        for path in UPNP_DESCRIPTION_PATHS:
            if cancel is not None and cancel.is_set():
                return None

            url = f"http://{ip}:{port}{path}" if port != 80 else f"http://{ip}{path}"
            response = fetch(url, timeout)
            if response is None:
                # Nothing listening on this port; skip its remaining paths
                break
            if response.status != 200 or "<" not in response.body:
                continue

            info = parse_upnp_description(response.body)
            if not looks_like_tv(info):
                _LOGGER.debug("UPnP device at %s is not a TV: %s", url, info.get("deviceType"))
                continue

            name = info.get("friendlyName") or f"TV ({ip})"
            manufacturer = info.get("manufacturer") or UNKNOWN
            tv = DiscoveredTV(
                id=info.get("UDN") or generate_id(ip),
                name=name,
                manufacturer=manufacturer,
                ip_address=ip,
                model_name=info.get("modelName"),
                source="upnp",
                raw_data={"location": url, **info},
            )
            _LOGGER.info("Found UPnP TV at %s: %s (%s)", ip, name, manufacturer)
            return tv

    return None


def is_accepted_status(status: int) -> bool:
    """Check whether a port probe answer is worth classifying."""
    return 200 <= status < 300 or status in PROBE_ACCEPT_STATUS


def probe_ports(
    ip: str,
    timeout: float = PROBE_TIMEOUT,
    fetch: Fetcher = http_get,
    cancel: Optional[threading.Event] = None,
    ports: Tuple[int, ...] = PROBE_PORTS,
) -> Optional[DiscoveredTV]:
    """Probe common TV control ports and classify the first answer.

    Args:
        ip: Target IP address
        timeout: Per-request timeout in seconds
        fetch: HTTP fetch function
        cancel: Stop early when set
        ports: Ports to try, in order

    Returns:
        DiscoveredTV built from the classifier result, None if no port answered
    """
    for port in ports:
        if cancel is not None and cancel.is_set():
            return None

        response = fetch(f"http://{ip}:{port}/", timeout)
        if response is None or not is_accepted_status(response.status):
            continue

        detected = classify(ip, port, response.status, response.headers, response.body)
        tv = DiscoveredTV(
            id=generate_id(ip),
            name=f"{detected.name} ({ip}:{port})",
            manufacturer=detected.manufacturer,
            ip_address=ip,
            model_name=detected.model,
            source="probe",
            raw_data={"port": port, "status": response.status},
        )
        _LOGGER.info("Found TV at %s:%d: %s", ip, port, detected.manufacturer)
        return tv

    return None


def probe_host(
    ip: str,
    timeout: float = PROBE_TIMEOUT,
    fetch: Fetcher = http_get,
    cancel: Optional[threading.Event] = None,
) -> Optional[DiscoveredTV]:
    """Run the full probe chain for one host: UPnP first, then ports."""
    _LOGGER.debug("Probing %s", ip)
    tv = probe_upnp(ip, timeout=timeout, fetch=fetch, cancel=cancel)
    if tv is not None:
        return tv
    return probe_ports(ip, timeout=timeout, fetch=fetch, cancel=cancel)


def generate_id(ip: str) -> str:
    """Stable identifier for a TV known only by its IP address."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"smarttv://{ip}"))


def get_local_ip() -> Optional[str]:
    """Get the local IPv4 address used for the default route.

    Returns:
        IP address string, or None if it cannot be determined
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            # No packet is sent; connect() only selects the route
            sock.connect(("8.8.8.8", 80))
            return sock.getsockname()[0]
    except OSError as e:
        _LOGGER.debug("Could not determine local IP: %s", e)
    try:
        return socket.gethostbyname(socket.gethostname())
    except OSError:
        return None


def subnet_hosts(
    local_ip: str,
    start: int = SCAN_RANGE_START,
    end: int = SCAN_RANGE_END,
) -> List[str]:
    """List candidate hosts in the local /24, excluding ourselves.

    Args:
        local_ip: Our IPv4 address
        start: First last-octet value to scan
        end: Last last-octet value to scan (inclusive)

    Returns:
        List of IP address strings
    """
    network = ipaddress.ip_network(f"{local_ip}/24", strict=False)
    prefix = str(network.network_address).rsplit(".", 1)[0]
    return [
        f"{prefix}.{octet}"
        for octet in range(max(1, start), min(254, end) + 1)
        if f"{prefix}.{octet}" != local_ip
    ]
