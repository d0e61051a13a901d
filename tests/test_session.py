"""Tests for the Samsung TV control channel session."""

from __future__ import annotations

import ssl
from urllib.parse import parse_qs, urlparse

import pytest

from smarttv.config import TokenStorage
from smarttv.exceptions import (
    AccessDenied,
    ConnectionFailed,
    ConnectionLost,
    HandshakeTimeout,
    PairingTimeout,
)
from smarttv.keys import TVCommand
from smarttv.session import ConnectionPhase, TVSession

from .conftest import TOKEN, TV_HOST, FakeWebSocketFactory, wait_until


@pytest.fixture
def phases(session: TVSession) -> list:
    """Record phase notifications."""
    recorded = []
    session.on_phase_change = lambda phase, error: recorded.append((phase, error))
    return recorded


def _connect(session: TVSession, ws_factory: FakeWebSocketFactory, connect_ack: dict):
    session.connect_to_tv(TV_HOST)
    ws = ws_factory.last
    ws.open()
    ws.receive(connect_ack)
    return ws


def test_initial_state(session: TVSession) -> None:
    assert session.phase == ConnectionPhase.DISCONNECTED
    assert session.host is None
    assert not session.is_authenticated
    assert not session.is_connected


def test_pairing_stores_token(
    session: TVSession,
    ws_factory: FakeWebSocketFactory,
    token_storage: TokenStorage,
    connect_ack: dict,
    phases: list,
) -> None:
    """Test the connect acknowledgement persists the token and connects."""
    session.connect_to_tv(TV_HOST)

    assert session.phase == ConnectionPhase.CONNECTING
    assert session.host == TV_HOST
    ws = ws_factory.last
    assert "token" not in parse_qs(urlparse(ws.url).query)

    ws.open()
    ws.receive(connect_ack)

    assert session.phase == ConnectionPhase.CONNECTED
    assert session.is_authenticated
    assert session.auth_token == TOKEN
    assert token_storage.get_token() == TOKEN
    assert token_storage.list_tokens()[0]["host"] == TV_HOST
    assert [phase for phase, _ in phases] == [ConnectionPhase.CONNECTING, ConnectionPhase.CONNECTED]


def test_saved_token_is_presented(
    session: TVSession,
    ws_factory: FakeWebSocketFactory,
    token_storage: TokenStorage,
) -> None:
    """Test a persisted token is sent with the next connection."""
    token_storage.save_token("SAVED42", host=TV_HOST)

    session.connect_to_tv(TV_HOST)

    assert session.auth_token == "SAVED42"
    assert parse_qs(urlparse(ws_factory.last.url).query)["token"] == ["SAVED42"]


def test_token_survives_new_storage_instance(
    session: TVSession,
    ws_factory: FakeWebSocketFactory,
    token_storage: TokenStorage,
    connect_ack: dict,
) -> None:
    """Test the token is durable across storage instances."""
    _connect(session, ws_factory, connect_ack)

    assert TokenStorage(token_storage.storage_path).get_token() == TOKEN


def test_per_device_tokens(tmp_path, ws_factory: FakeWebSocketFactory, connect_ack: dict) -> None:
    """Test tokens keyed by host when per-device storage is enabled."""
    storage = TokenStorage(tmp_path / "tokens.json")
    session = TVSession(storage=storage, per_device_tokens=True, websocket_factory=ws_factory)
    try:
        _connect(session, ws_factory, connect_ack)
    finally:
        session.disconnect_tv()

    assert storage.get_token(TV_HOST) == TOKEN
    assert storage.get_token() is None


def test_ack_without_token_keeps_saved_token(
    session: TVSession,
    ws_factory: FakeWebSocketFactory,
    token_storage: TokenStorage,
) -> None:
    """Test reconnecting with a valid token needs no new one."""
    token_storage.save_token("SAVED42", host=TV_HOST)
    session.connect_to_tv(TV_HOST)

    ws_factory.last.receive({"event": "ms.channel.connect", "data": {}})

    assert session.is_connected
    assert session.auth_token == "SAVED42"
    assert token_storage.get_token() == "SAVED42"


def test_transport_uses_trust_policy(session: TVSession, ws_factory: FakeWebSocketFactory) -> None:
    """Test the transport thread runs with the host's ssl options."""
    session.connect_to_tv(TV_HOST)
    ws = ws_factory.last

    assert ws.started.wait(2)
    assert ws.sslopt == {"cert_reqs": ssl.CERT_NONE, "check_hostname": False}


def test_keepalive_pings_on_open(session: TVSession, ws_factory: FakeWebSocketFactory) -> None:
    """Test a ping goes out as soon as the transport opens."""
    session.connect_to_tv(TV_HOST)
    ws = ws_factory.last

    ws.open()

    assert wait_until(lambda: ws.pings >= 1)
    assert ws.frames == []


def test_keepalive_repeats(ws_factory: FakeWebSocketFactory, token_storage: TokenStorage) -> None:
    """Test pings repeat at the keepalive interval."""
    session = TVSession(storage=token_storage, keepalive_interval=0.05, websocket_factory=ws_factory)
    try:
        session.connect_to_tv(TV_HOST)
        ws = ws_factory.last
        ws.open()

        assert wait_until(lambda: ws.pings >= 3)
    finally:
        session.disconnect_tv()


def test_send_command_when_connected(
    session: TVSession,
    ws_factory: FakeWebSocketFactory,
    connect_ack: dict,
) -> None:
    """Test exactly one key frame per command."""
    ws = _connect(session, ws_factory, connect_ack)

    assert session.send_command(TVCommand.VOLUME_UP)

    assert len(ws.frames) == 1
    assert ws.frames[0]["params"]["DataOfCmd"] == "KEY_VOLUP"


def test_send_text_when_connected(
    session: TVSession,
    ws_factory: FakeWebSocketFactory,
    connect_ack: dict,
) -> None:
    """Test a single input-string frame with the raw text."""
    ws = _connect(session, ws_factory, connect_ack)

    assert session.send_text("hello")

    assert ws.frames == [{
        "method": "ms.remote.control",
        "params": {"Cmd": "hello", "DataOfCmd": "InputString", "TypeOfRemote": "SendInputString"},
    }]


@pytest.mark.parametrize("open_transport", [False, True])
def test_send_guarded_while_connecting(
    session: TVSession,
    ws_factory: FakeWebSocketFactory,
    open_transport: bool,
) -> None:
    """Test nothing is transmitted before the acknowledgement."""
    session.connect_to_tv(TV_HOST)
    ws = ws_factory.last
    if open_transport:
        ws.open()

    assert not session.send_command(TVCommand.HOME)
    assert not session.send_text("hi")
    assert not session.send_key("KEY_MENU")

    assert ws.frames == []
    assert session.phase == ConnectionPhase.CONNECTING


def test_send_guarded_while_disconnected(session: TVSession) -> None:
    assert not session.send_command(TVCommand.POWER_TOGGLE)
    assert not session.send_text("hi")
    assert session.phase == ConnectionPhase.DISCONNECTED


def test_send_failure_returns_false(
    session: TVSession,
    ws_factory: FakeWebSocketFactory,
    connect_ack: dict,
) -> None:
    """Test a transport send error is reported, not raised."""
    ws = _connect(session, ws_factory, connect_ack)
    ws.closed.set()

    assert not session.send_key("KEY_HOME")


def test_disconnect_sends_notice(
    session: TVSession,
    ws_factory: FakeWebSocketFactory,
    connect_ack: dict,
    phases: list,
) -> None:
    """Test a connected session says goodbye and resets."""
    ws = _connect(session, ws_factory, connect_ack)

    session.disconnect_tv()

    assert ws.frames[-1] == {"method": "ms.channel.disconnect"}
    assert ws.close_calls == 1
    assert session.phase == ConnectionPhase.DISCONNECTED
    assert session.host is None
    assert not session.is_authenticated
    assert phases[-1] == (ConnectionPhase.DISCONNECTED, None)


def test_disconnect_is_quiet_after_self_close(
    session: TVSession,
    ws_factory: FakeWebSocketFactory,
    connect_ack: dict,
    phases: list,
) -> None:
    """Test closing the transport ourselves raises no negative notification."""
    ws = _connect(session, ws_factory, connect_ack)
    session.disconnect_tv()

    assert ws.finished.wait(2)

    assert [phase for phase, _ in phases].count(ConnectionPhase.DISCONNECTED) == 1
    assert all(error is None for _, error in phases)


def test_disconnect_when_disconnected(session: TVSession, phases: list) -> None:
    """Test disconnect is a no-op without a channel."""
    session.disconnect_tv()

    assert session.phase == ConnectionPhase.DISCONNECTED
    assert phases == []


def test_disconnect_while_connecting(session: TVSession, ws_factory: FakeWebSocketFactory) -> None:
    """Test no notice is sent before the channel is up."""
    session.connect_to_tv(TV_HOST)
    ws = ws_factory.last
    ws.open()

    session.disconnect_tv()

    assert ws.frames == []
    assert ws.closed.is_set()
    assert session.phase == ConnectionPhase.DISCONNECTED


def test_reconnect_closes_previous_transport(
    session: TVSession,
    ws_factory: FakeWebSocketFactory,
    connect_ack: dict,
    phases: list,
) -> None:
    """Test connecting to another TV tears down the first channel first."""
    first = _connect(session, ws_factory, connect_ack)
    assert wait_until(lambda: first.pings >= 1)
    pings_before = first.pings

    session.connect_to_tv("192.168.1.51")
    second = ws_factory.last

    assert second is not first
    assert first.closed.is_set()
    assert not second.closed.is_set()
    assert session.host == "192.168.1.51"
    assert session.phase == ConnectionPhase.CONNECTING
    assert first.pings == pings_before

    # Late events from the first channel are ignored
    first.receive(connect_ack)
    assert session.phase == ConnectionPhase.CONNECTING
    assert phases[-1] == (ConnectionPhase.CONNECTING, None)


def test_handshake_timeout(ws_factory: FakeWebSocketFactory, token_storage: TokenStorage) -> None:
    """Test a silent TV fails the attempt."""
    phases = []
    session = TVSession(
        storage=token_storage,
        handshake_timeout=0.1,
        websocket_factory=ws_factory,
        on_phase_change=lambda phase, error: phases.append((phase, error)),
    )
    session.connect_to_tv(TV_HOST)
    ws = ws_factory.last

    assert wait_until(lambda: session.phase == ConnectionPhase.FAILED)

    assert isinstance(session.last_error, HandshakeTimeout)
    assert ws.closed.is_set()
    assert phases[-1][0] == ConnectionPhase.FAILED
    assert isinstance(phases[-1][1], HandshakeTimeout)


def test_handshake_timer_cancelled_on_connect(
    ws_factory: FakeWebSocketFactory,
    token_storage: TokenStorage,
    connect_ack: dict,
) -> None:
    """Test a successful pairing is not failed by the timer."""
    session = TVSession(storage=token_storage, handshake_timeout=0.1, websocket_factory=ws_factory)
    try:
        _connect(session, ws_factory, connect_ack)

        assert not wait_until(lambda: session.phase != ConnectionPhase.CONNECTED, timeout=0.3)
    finally:
        session.disconnect_tv()


@pytest.mark.parametrize(
    ("event", "error_type"),
    [
        ("ms.channel.unauthorized", AccessDenied),
        ("ms.channel.timeOut", PairingTimeout),
    ],
)
def test_pairing_rejected(
    session: TVSession,
    ws_factory: FakeWebSocketFactory,
    token_storage: TokenStorage,
    phases: list,
    event: str,
    error_type: type,
) -> None:
    """Test a denied or expired pairing prompt fails the attempt."""
    session.connect_to_tv(TV_HOST)
    ws = ws_factory.last
    ws.open()

    ws.receive({"event": event})

    assert session.phase == ConnectionPhase.FAILED
    assert isinstance(session.last_error, error_type)
    assert not session.is_authenticated
    assert token_storage.get_token() is None
    assert ws.closed.is_set()
    assert isinstance(phases[-1][1], error_type)


def test_malformed_frames_ignored(
    session: TVSession,
    ws_factory: FakeWebSocketFactory,
    connect_ack: dict,
) -> None:
    """Test garbage from the TV changes nothing."""
    session.connect_to_tv(TV_HOST)
    ws = ws_factory.last

    ws.receive("{not json")
    ws.receive({"event": "ms.channel.clientConnect"})
    ws.receive("[]")

    assert session.phase == ConnectionPhase.CONNECTING

    ws.receive(connect_ack)
    assert session.is_connected


def test_transport_drop_after_connect(
    session: TVSession,
    ws_factory: FakeWebSocketFactory,
    connect_ack: dict,
    phases: list,
) -> None:
    """Test a dropped transport disconnects with a ConnectionLost."""
    ws = _connect(session, ws_factory, connect_ack)

    ws.error(OSError("Connection reset by peer"))
    ws.drop()

    assert wait_until(lambda: session.phase == ConnectionPhase.DISCONNECTED)
    assert session.host is None
    assert not session.is_authenticated
    assert isinstance(session.last_error, ConnectionLost)
    assert "Connection reset by peer" in str(session.last_error)
    assert wait_until(lambda: phases[-1][0] == ConnectionPhase.DISCONNECTED)
    assert isinstance(phases[-1][1], ConnectionLost)


def test_transport_drop_while_connecting(
    session: TVSession,
    ws_factory: FakeWebSocketFactory,
) -> None:
    """Test a transport that never pairs fails the attempt."""
    session.connect_to_tv(TV_HOST)
    ws = ws_factory.last
    assert ws.started.wait(2)

    ws.drop()

    assert wait_until(lambda: session.phase == ConnectionPhase.FAILED)
    assert isinstance(session.last_error, ConnectionFailed)


def test_reconnect_after_failure(
    session: TVSession,
    ws_factory: FakeWebSocketFactory,
    connect_ack: dict,
) -> None:
    """Test a failed attempt is recoverable."""
    session.connect_to_tv(TV_HOST)
    ws_factory.last.receive({"event": "ms.channel.unauthorized"})
    assert session.phase == ConnectionPhase.FAILED

    _connect(session, ws_factory, connect_ack)

    assert session.is_connected
    assert session.last_error is None
