"""Tests for Wake-on-LAN."""

from __future__ import annotations

from unittest.mock import MagicMock, call, patch

import pytest

from smarttv.wol import create_magic_packet, send_wol, wake_tv


@pytest.mark.parametrize(
    "mac",
    ["AA:BB:CC:DD:EE:FF", "aa-bb-cc-dd-ee-ff", "aabbccddeeff", "aabb.ccdd.eeff"],
)
def test_magic_packet_layout(mac: str) -> None:
    """Test 6 x 0xFF followed by the MAC repeated 16 times."""
    packet = create_magic_packet(mac)

    assert len(packet) == 102
    assert packet[:6] == b"\xff" * 6
    assert packet[6:] == bytes.fromhex("aabbccddeeff") * 16


@pytest.mark.parametrize("mac", ["", "AA:BB:CC", "GG:HH:II:JJ:KK:LL", "AA:BB:CC:DD:EE:FF:00"])
def test_magic_packet_invalid_mac(mac: str) -> None:
    with pytest.raises(ValueError):
        create_magic_packet(mac)


def test_send_wol_broadcasts_to_port_9() -> None:
    """Test the packet goes to the broadcast address on UDP 9."""
    with patch("smarttv.wol.socket.socket") as mock_socket_cls:
        mock_sock = MagicMock()
        mock_socket_cls.return_value.__enter__.return_value = mock_sock

        assert send_wol("AA:BB:CC:DD:EE:FF")

    mock_sock.sendto.assert_called_once_with(create_magic_packet("AA:BB:CC:DD:EE:FF"), ("255.255.255.255", 9))


def test_send_wol_invalid_mac() -> None:
    with patch("smarttv.wol.socket.socket") as mock_socket_cls:
        assert not send_wol("nope")

    mock_socket_cls.assert_not_called()


def test_send_wol_socket_error() -> None:
    with patch("smarttv.wol.socket.socket", side_effect=OSError("Network is unreachable")):
        assert not send_wol("AA:BB:CC:DD:EE:FF")


def test_wake_tv_with_subnet() -> None:
    """Test the subnet broadcast is added to the global one."""
    with patch("smarttv.wol.send_wol", return_value=True) as mock_send:
        assert wake_tv("AA:BB:CC:DD:EE:FF", subnet="192.168.1", ports=(9, 7))

    assert mock_send.call_args_list == [
        call("AA:BB:CC:DD:EE:FF", "255.255.255.255", 9),
        call("AA:BB:CC:DD:EE:FF", "255.255.255.255", 7),
        call("AA:BB:CC:DD:EE:FF", "192.168.1.255", 9),
        call("AA:BB:CC:DD:EE:FF", "192.168.1.255", 7),
    ]


def test_wake_tv_all_sends_fail() -> None:
    with patch("smarttv.wol.send_wol", return_value=False):
        assert not wake_tv("AA:BB:CC:DD:EE:FF")
