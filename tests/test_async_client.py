"""Tests for the asyncio facade."""

from __future__ import annotations

from collections.abc import Generator
from unittest.mock import patch

import pytest

from smarttv.async_client import AsyncSmartTV, tv_for_host
from smarttv.context import AppContext
from smarttv.exceptions import HandshakeTimeout
from smarttv.keys import TVCommand
from smarttv.manager import ConnectionStatus

from .conftest import TV_HOST, FakeWebSocketFactory


@pytest.fixture
def smart_tv(sample_config: dict, pairing_factory: FakeWebSocketFactory) -> Generator[AsyncSmartTV, None, None]:
    """Facade over a context whose TV accepts pairing."""
    context = AppContext.create(config=sample_config, websocket_factory=pairing_factory)
    yield AsyncSmartTV(context=context)
    context.close()


def test_tv_for_host() -> None:
    tv = tv_for_host(TV_HOST, mac_address="AA:BB:CC:DD:EE:FF")

    assert tv.host == TV_HOST
    assert tv.name == TV_HOST
    assert tv.mac_address == "AA:BB:CC:DD:EE:FF"
    assert tv.source == "manual"


@pytest.mark.asyncio
async def test_connect_by_host(smart_tv: AsyncSmartTV) -> None:
    """Test a bare address is enough to connect."""
    assert await smart_tv.async_connect(TV_HOST, timeout=2.0)

    assert smart_tv.is_connected
    assert smart_tv.connection_status == ConnectionStatus.CONNECTED
    assert smart_tv.connected_tv.host == TV_HOST


@pytest.mark.asyncio
async def test_send_command_and_text(smart_tv: AsyncSmartTV, pairing_factory: FakeWebSocketFactory) -> None:
    """Test commands by enum and by name plus text input."""
    tv = tv_for_host(TV_HOST, name="Living Room")
    tv.manufacturer = "Samsung"
    assert await smart_tv.async_connect(tv, timeout=2.0)

    assert await smart_tv.async_send_command(TVCommand.HOME)
    assert await smart_tv.async_send_command("volup")
    assert await smart_tv.async_send_text("hello")

    sent = [frame["params"]["DataOfCmd"] for frame in pairing_factory.last.frames]
    assert sent == ["KEY_HOME", "KEY_VOLUP", "InputString"]


@pytest.mark.asyncio
async def test_connect_failure_raises(sample_config: dict, ws_factory: FakeWebSocketFactory) -> None:
    """Test raise_on_failure surfaces the timeout when the TV is silent."""
    client = AsyncSmartTV(context=AppContext.create(config=sample_config, websocket_factory=ws_factory))

    with pytest.raises(HandshakeTimeout):
        await client.async_connect(TV_HOST, timeout=0.1, raise_on_failure=True)

    await client.async_close()


@pytest.mark.asyncio
async def test_operations_without_context() -> None:
    """Test control calls are refused before a context exists."""
    client = AsyncSmartTV()

    assert not client.is_connected
    assert client.connection_status == ConnectionStatus.DISCONNECTED
    assert client.discovered_tvs == []
    assert not await client.async_send_command(TVCommand.POWER_TOGGLE)
    assert not await client.async_send_text("hello")
    assert not await client.async_launch_app("youtube")
    assert not await client.async_wake()


@pytest.mark.asyncio
async def test_context_manager(sample_config: dict, ws_factory: FakeWebSocketFactory) -> None:
    """Test the context is built on enter and released on exit."""
    async with AsyncSmartTV(config=sample_config, websocket_factory=ws_factory) as client:
        assert client.context is not None
        assert client.context.session.app_name == "Test Remote"

    assert client.context is None


@pytest.mark.asyncio
async def test_discover_runs_scanner(smart_tv: AsyncSmartTV) -> None:
    found = [tv_for_host("192.168.1.60")]

    with patch.object(smart_tv.context.scanner, "discover", return_value=found) as mock_discover:
        assert await smart_tv.async_discover(timeout=0.5) == found

    mock_discover.assert_called_once_with(0.5)


@pytest.mark.asyncio
async def test_wake_uses_given_tv(smart_tv: AsyncSmartTV) -> None:
    tv = tv_for_host(TV_HOST, mac_address="AA:BB:CC:DD:EE:FF")

    with patch("smarttv.remote.wake_tv", return_value=True) as mock_wake:
        assert await smart_tv.async_wake(tv)

    assert mock_wake.call_args[0][0] == "AA:BB:CC:DD:EE:FF"
