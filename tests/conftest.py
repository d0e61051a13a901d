"""Fixtures for smarttv tests."""

from __future__ import annotations

import json
import threading
import time
from collections.abc import Generator
from typing import Any, Callable

import pytest
import websocket

from smarttv.config import TokenStorage
from smarttv.discovery import HttpResponse
from smarttv.dispatch import InlineDispatcher
from smarttv.session import TVSession

TV_HOST = "192.168.1.50"
TOKEN = "ABC123"

CONNECT_ACK = {
    "event": "ms.channel.connect",
    "data": {"clients": [{"attributes": {"token": TOKEN}}]},
}

LIVING_ROOM_DESCRIPTION = """<?xml version="1.0"?>
<root xmlns="urn:schemas-upnp-org:device-1-0">
  <device>
    <deviceType>urn:schemas-upnp-org:device:MediaRenderer:1</deviceType>
    <friendlyName>Living Room TV</friendlyName>
    <manufacturer>LG Electronics</manufacturer>
    <modelName>OLED55C1</modelName>
    <UDN>uuid:living-room-tv</UDN>
  </device>
</root>
"""


class FakeWebSocketApp:
    """Stand-in for websocket.WebSocketApp.

    run_forever() blocks until close() or drop(), then fires on_close the
    way the real transport thread does.
    """

    def __init__(self, url, on_open=None, on_message=None, on_error=None, on_close=None):
        self.url = url
        self.on_open = on_open
        self.on_message = on_message
        self.on_error = on_error
        self.on_close = on_close
        self.sent: list[tuple[str, int]] = []
        self.sslopt: dict | None = None
        self.started = threading.Event()
        self.closed = threading.Event()
        self.finished = threading.Event()
        self.close_calls = 0

    def run_forever(self, sslopt=None, **kwargs):
        self.sslopt = sslopt
        self.started.set()
        self.closed.wait(10)
        if self.on_close is not None:
            self.on_close(self, None, None)
        self.finished.set()

    def send(self, data, opcode=websocket.ABNF.OPCODE_TEXT):
        if self.closed.is_set():
            raise websocket.WebSocketConnectionClosedException("socket is already closed.")
        self.sent.append((data, opcode))

    def close(self, **kwargs):
        self.close_calls += 1
        self.closed.set()

    # Test helpers

    def open(self):
        self.on_open(self)

    def receive(self, payload: Any):
        message = payload if isinstance(payload, str) else json.dumps(payload)
        self.on_message(self, message)

    def error(self, error: Exception):
        self.on_error(self, error)

    def drop(self):
        """Close from the remote side."""
        self.closed.set()

    @property
    def frames(self) -> list[dict]:
        """JSON text frames sent so far (pings excluded)."""
        return [json.loads(data) for data, opcode in list(self.sent) if opcode == websocket.ABNF.OPCODE_TEXT]

    @property
    def pings(self) -> int:
        return sum(1 for _, opcode in list(self.sent) if opcode == websocket.ABNF.OPCODE_PING)


class PairingWebSocketApp(FakeWebSocketApp):
    """Transport whose TV accepts the pairing prompt as soon as it opens."""

    def run_forever(self, sslopt=None, **kwargs):
        self.open()
        self.receive(CONNECT_ACK)
        super().run_forever(sslopt=sslopt, **kwargs)


class FakeWebSocketFactory:
    """Records every FakeWebSocketApp a session creates."""

    def __init__(self, app_class: type[FakeWebSocketApp] = FakeWebSocketApp):
        self.app_class = app_class
        self.instances: list[FakeWebSocketApp] = []

    def __call__(self, url, **callbacks) -> FakeWebSocketApp:
        ws = self.app_class(url, **callbacks)
        self.instances.append(ws)
        return ws

    @property
    def last(self) -> FakeWebSocketApp:
        return self.instances[-1]


class FakeFetcher:
    """HTTP fetcher answering from a url -> HttpResponse table."""

    def __init__(self, responses: dict[str, HttpResponse] | None = None):
        self.responses = dict(responses or {})
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def __call__(self, url: str, timeout: float) -> HttpResponse | None:
        with self._lock:
            self.calls.append(url)
        return self.responses.get(url)


def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll until predicate() is true or the timeout passes."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def token_storage(tmp_path) -> TokenStorage:
    """Token storage in a temporary directory."""
    return TokenStorage(tmp_path / "tokens.json")


@pytest.fixture
def ws_factory() -> FakeWebSocketFactory:
    return FakeWebSocketFactory()


@pytest.fixture
def pairing_factory() -> FakeWebSocketFactory:
    """Transport factory for a TV that accepts pairing immediately."""
    return FakeWebSocketFactory(PairingWebSocketApp)


@pytest.fixture
def dispatch() -> InlineDispatcher:
    return InlineDispatcher()


@pytest.fixture
def session(token_storage, ws_factory) -> Generator[TVSession, None, None]:
    """TVSession wired to the fake transport."""
    tv_session = TVSession(
        storage=token_storage,
        handshake_timeout=5.0,
        websocket_factory=ws_factory,
    )
    yield tv_session
    tv_session.on_phase_change = None
    tv_session.disconnect_tv()


@pytest.fixture
def connect_ack() -> dict:
    return json.loads(json.dumps(CONNECT_ACK))


@pytest.fixture
def upnp_description() -> str:
    return LIVING_ROOM_DESCRIPTION


@pytest.fixture
def sample_config(tmp_path) -> dict:
    """Minimal configuration for building an AppContext offline."""
    return {
        "app_name": "Test Remote",
        "tvs": {},
        "default_tv": None,
        "discovery": {
            "scan_timeout": 1.0,
            "probe_timeout": 0.1,
            "device_info_timeout": 0.1,
            "subnet_scan": False,
            "ssdp": False,
            "range_start": 1,
            "range_end": 254,
        },
        "options": {
            "handshake_timeout": 2.0,
            "keepalive_interval": 30.0,
            "per_device_tokens": False,
            "text_encoding": "raw",
            "token_file": str(tmp_path / "tokens.json"),
            "log_level": "WARNING",
        },
    }
