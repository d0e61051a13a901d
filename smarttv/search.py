"""Vendor service search backends.

The scanner's SDK-driven strategy depends only on the ServiceSearch
interface: found/lost service events plus a device-info fetch. The
bundled adapter finds Samsung receivers with SSDP M-SEARCH and reads
device info from the TV's REST API on port 8001.
"""

import json
import logging
import socket
import threading
import time
import urllib.error
import urllib.request
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional
from urllib.parse import urlparse

from .config import (
    DEVICE_INFO_TIMEOUT,
    REST_PORT,
    SAMSUNG_SEARCH_TARGET,
    SSDP_ADDR,
    SSDP_PORT,
)

_LOGGER = logging.getLogger(__name__)

# SSDP M-SEARCH request template
SSDP_MSEARCH = (
    "M-SEARCH * HTTP/1.1\r\n"
    "HOST: {addr}:{port}\r\n"
    'MAN: "ssdp:discover"\r\n'
    "MX: {mx}\r\n"
    "ST: {st}\r\n"
    "\r\n"
)


@dataclass
class Service:
    """Handle for a TV service found by a search backend."""

    id: str
    name: str
    uri: str
    attributes: Dict[str, str] = field(default_factory=dict, compare=False)

    @property
    def host(self) -> str:
        if "://" in self.uri:
            return urlparse(self.uri).hostname or self.uri
        return self.uri

    @classmethod
    def for_host(cls, host: str, service_id: Optional[str] = None, name: Optional[str] = None) -> "Service":
        """Service handle for a TV addressed directly by IP."""
        return cls(
            id=service_id or host,
            name=name or host,
            uri=f"http://{host}:{REST_PORT}/api/v2/",
        )


ServiceCallback = Callable[[Service], None]


class ServiceSearch(ABC):
    """Search for TV services on the local network."""

    @abstractmethod
    def start(self, on_found: ServiceCallback, on_lost: ServiceCallback):
        """Begin searching; callbacks fire on a background thread."""

    @abstractmethod
    def stop(self):
        """Stop searching. Must not block on network I/O."""

    @abstractmethod
    def get_device_info(self, service: Service, timeout: float = DEVICE_INFO_TIMEOUT) -> Optional[dict]:
        """Fetch extended device info for a service.

        Returns:
            Device info dict (with a "device" block carrying "wifiMac",
            "name" and "modelName"), or None on failure
        """


def parse_ssdp_headers(message: str) -> Dict[str, str]:
    """Parse SSDP message headers into a dictionary.

    Args:
        message: Raw SSDP message string.

    Returns:
        Dictionary of upper-cased header name -> value.
    """
    headers = {}
    for line in message.split("\r\n"):
        if ":" in line:
            key, _, value = line.partition(":")
            headers[key.strip().upper()] = value.strip()
    return headers


def service_from_ssdp(ip: str, headers: Dict[str, str]) -> Service:
    """Build a Service from an M-SEARCH response."""
    usn = headers.get("USN", "")
    service_id = usn.split("::", 1)[0] if usn else ip
    return Service(
        id=service_id or ip,
        name=headers.get("SERVER") or f"Samsung TV ({ip})",
        uri=f"http://{ip}:{REST_PORT}/api/v2/",
        attributes=dict(headers),
    )


class SsdpServiceSearch(ServiceSearch):
    """Search for Samsung remote-control receivers over SSDP.

    Each round sends one M-SEARCH and collects answers for ``mx`` seconds.
    A service that misses ``expire_rounds`` consecutive rounds is
    reported lost.
    """

    def __init__(
        self,
        search_target: str = SAMSUNG_SEARCH_TARGET,
        mx: int = 2,
        expire_rounds: int = 3,
        interface: Optional[str] = None,
    ):
        self.search_target = search_target
        self.mx = mx
        self.expire_rounds = expire_rounds
        self.interface = interface

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._services: Dict[str, Service] = {}
        self._missed: Dict[str, int] = {}
        self._on_found: Optional[ServiceCallback] = None
        self._on_lost: Optional[ServiceCallback] = None

    def start(self, on_found: ServiceCallback, on_lost: ServiceCallback):
        self.stop()
        self._stop = threading.Event()
        self._services = {}
        self._missed = {}
        self._on_found = on_found
        self._on_lost = on_lost
        self._thread = threading.Thread(
            target=self._run, args=(self._stop,), name="smarttv_ssdp", daemon=True
        )
        self._thread.start()
        _LOGGER.debug("SSDP search started for %s", self.search_target)

    def stop(self):
        self._stop.set()
        self._thread = None

    def _run(self, stop: threading.Event):
        while not stop.is_set():
            seen = self._search_round(stop)
            if stop.is_set():
                break
            self.process_round(seen)

    def _search_round(self, stop: threading.Event) -> Dict[str, Dict[str, str]]:
        """Send one M-SEARCH and collect responses keyed by IP."""
        seen: Dict[str, Dict[str, str]] = {}
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        except OSError as e:
            _LOGGER.warning("Failed to create SSDP socket: %s", e)
            stop.wait(self.mx)
            return seen

        with sock:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, 2)
            sock.settimeout(0.5)
            try:
                sock.bind((self.interface or "", 0))
                msearch = SSDP_MSEARCH.format(
                    addr=SSDP_ADDR, port=SSDP_PORT, mx=self.mx, st=self.search_target
                )
                sock.sendto(msearch.encode(), (SSDP_ADDR, SSDP_PORT))
            except OSError as e:
                _LOGGER.warning("Failed to send M-SEARCH: %s", e)
                stop.wait(self.mx)
                return seen

            deadline = time.monotonic() + self.mx
            while time.monotonic() < deadline and not stop.is_set():
                try:
                    data, addr = sock.recvfrom(4096)
                except socket.timeout:
                    continue
                except OSError as e:
                    _LOGGER.debug("Error receiving SSDP response: %s", e)
                    break

                message = data.decode("utf-8", errors="ignore")
                if not message.startswith("HTTP"):
                    continue
                seen[addr[0]] = parse_ssdp_headers(message)

        return seen

    def process_round(self, seen: Dict[str, Dict[str, str]]):
        """Emit found/lost events for one round of responses.

        Args:
            seen: Responding IP -> SSDP headers
        """
        for ip, headers in seen.items():
            self._missed[ip] = 0
            if ip not in self._services:
                service = service_from_ssdp(ip, headers)
                self._services[ip] = service
                _LOGGER.info("Found service via SSDP: %s (%s)", service.name, ip)
                if self._on_found:
                    self._on_found(service)

        for ip in list(self._services):
            if ip in seen:
                continue
            self._missed[ip] = self._missed.get(ip, 0) + 1
            if self._missed[ip] >= self.expire_rounds:
                service = self._services.pop(ip)
                self._missed.pop(ip, None)
                _LOGGER.info("Lost service: %s (%s)", service.name, ip)
                if self._on_lost:
                    self._on_lost(service)

    def get_device_info(self, service: Service, timeout: float = DEVICE_INFO_TIMEOUT) -> Optional[dict]:
        url = f"http://{service.host}:{REST_PORT}/api/v2/"
        try:
            with urllib.request.urlopen(url, timeout=timeout) as response:
                info = json.loads(response.read().decode("utf-8"))
        except (urllib.error.URLError, OSError, ValueError) as e:
            _LOGGER.debug("Device info fetch failed for %s: %s", service.host, e)
            return None

        if not isinstance(info, dict):
            return None
        return info
