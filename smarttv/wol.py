"""Wake-on-LAN for TVs that are off the control channel."""

import logging
import re
import socket
from typing import Iterable, Optional

from .config import BROADCAST_ADDR, WOL_PORT

_LOGGER = logging.getLogger(__name__)

_HEX_MAC = re.compile(r"^[0-9A-F]{12}$")


def create_magic_packet(mac_address: str) -> bytes:
    """Build a magic packet: 6 bytes of 0xFF, then the MAC repeated 16 times.

    Args:
        mac_address: MAC as XX:XX:XX:XX:XX:XX, XX-XX-XX-XX-XX-XX or bare hex

    Returns:
        102-byte packet

    Raises:
        ValueError: If the MAC address is malformed
    """
    mac = mac_address.upper().replace(":", "").replace("-", "").replace(".", "")
    if not _HEX_MAC.match(mac):
        raise ValueError(f"Invalid MAC address: {mac_address}")
    return b"\xff" * 6 + bytes.fromhex(mac) * 16


def send_wol(mac_address: str, broadcast: str = BROADCAST_ADDR, port: int = WOL_PORT) -> bool:
    """Broadcast one magic packet.

    Args:
        mac_address: Target MAC address
        broadcast: Broadcast address
        port: UDP port

    Returns:
        True if the packet was sent
    """
    try:
        packet = create_magic_packet(mac_address)
    except ValueError as e:
        _LOGGER.error("%s", e)
        return False

    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.sendto(packet, (broadcast, port))
    except OSError as e:
        _LOGGER.warning("Wake-on-LAN to %s:%d failed: %s", broadcast, port, e)
        return False

    _LOGGER.debug("Sent magic packet for %s to %s:%d", mac_address, broadcast, port)
    return True


def wake_tv(mac_address: str, subnet: Optional[str] = None, ports: Iterable[int] = (WOL_PORT,)) -> bool:
    """Wake a TV, optionally also on its subnet's directed broadcast.

    Args:
        mac_address: TV's MAC address
        subnet: First three octets (e.g. "192.168.1") to add x.x.x.255
        ports: UDP ports to send to

    Returns:
        True if at least one packet was sent
    """
    broadcasts = [BROADCAST_ADDR]
    if subnet:
        broadcasts.append(f"{subnet}.255")

    sent = False
    for broadcast in broadcasts:
        for port in ports:
            if send_wol(mac_address, broadcast, port):
                sent = True

    if sent:
        _LOGGER.info("Wake-on-LAN sent to %s", mac_address)
    return sent
