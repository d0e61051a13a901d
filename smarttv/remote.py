"""Remote control facade.

Translates remote actions into ConnectionManager calls, gated on the
connection and on what the connected TV can do.
"""

import logging
from enum import Flag, auto
from typing import Optional

from .apps import TVApp, get_app
from .classifier import UNKNOWN
from .discovery import DiscoveredTV
from .keys import TVCommand, get_command
from .manager import ConnectionManager
from .wol import wake_tv

_LOGGER = logging.getLogger(__name__)

# Manufacturers whose TVs speak the control channel protocol
CONTROL_CHANNEL_BRANDS = ("samsung", UNKNOWN.lower())


class Capability(Flag):
    """Things the current TV can be asked to do."""
    NONE = 0
    KEYS = auto()
    TEXT = auto()
    APPS = auto()
    WAKE = auto()


class RemoteControl:
    """Remote control for the TV held by a ConnectionManager.

    Example usage:
        remote = RemoteControl(manager)
        remote.volume_up()
        remote.text("hello")
    """

    def __init__(self, manager: ConnectionManager):
        self.manager = manager

    @property
    def capabilities(self) -> Capability:
        """Capabilities of the connected TV (NONE when disconnected)."""
        tv = self.manager.connected_tv
        if not self.manager.is_connected or tv is None:
            return Capability.NONE

        caps = Capability.NONE
        manufacturer = (tv.manufacturer or UNKNOWN).lower()
        if any(brand in manufacturer for brand in CONTROL_CHANNEL_BRANDS):
            caps |= Capability.KEYS | Capability.TEXT
        if self.manager.has_app_service:
            caps |= Capability.APPS
        if tv.mac_address:
            caps |= Capability.WAKE
        return caps

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def _check(self, capability: Capability, action: str) -> bool:
        if not self.manager.is_connected:
            _LOGGER.warning("Not connected to TV, ignoring %s", action)
            return False
        if not self.supports(capability):
            _LOGGER.warning("Connected TV does not support %s", action)
            return False
        return True

    def send(self, command: TVCommand) -> bool:
        """Send a remote action."""
        if not self._check(Capability.KEYS, command.value):
            return False
        return self.manager.send_command(command)

    def send_named(self, name: str) -> bool:
        """Send an action by friendly name (e.g. 'volup') or raw key code.

        Raw codes not covered by TVCommand are passed through unchanged.
        """
        command = get_command(name)
        if command is not None:
            return self.send(command)
        key = name.upper().strip()
        if not key.startswith("KEY_"):
            _LOGGER.error("Unknown key: %s", name)
            return False
        if not self._check(Capability.KEYS, key):
            return False
        return self.manager.send_key(key)

    # Power
    def power(self) -> bool:
        return self.send(TVCommand.POWER_TOGGLE)

    # Navigation
    def home(self) -> bool:
        return self.send(TVCommand.HOME)

    def back(self) -> bool:
        return self.send(TVCommand.BACK)

    def up(self) -> bool:
        return self.send(TVCommand.UP)

    def down(self) -> bool:
        return self.send(TVCommand.DOWN)

    def left(self) -> bool:
        return self.send(TVCommand.LEFT)

    def right(self) -> bool:
        return self.send(TVCommand.RIGHT)

    def select(self) -> bool:
        return self.send(TVCommand.SELECT)

    ok = select

    # Volume
    def volume_up(self) -> bool:
        return self.send(TVCommand.VOLUME_UP)

    def volume_down(self) -> bool:
        return self.send(TVCommand.VOLUME_DOWN)

    def mute(self) -> bool:
        return self.send(TVCommand.MUTE)

    # Playback
    def play_pause(self) -> bool:
        return self.send(TVCommand.PLAY_PAUSE)

    def next(self) -> bool:
        return self.send(TVCommand.NEXT)

    def previous(self) -> bool:
        return self.send(TVCommand.PREVIOUS)

    def text(self, text: str) -> bool:
        """Type text into the TV's active input field."""
        if not self._check(Capability.TEXT, "text input"):
            return False
        return self.manager.send_text(text)

    def launch_app(self, app) -> bool:
        """Launch an app.

        Args:
            app: TVApp, or an app name/alias/id from the catalog
        """
        resolved: Optional[TVApp] = app if isinstance(app, TVApp) else get_app(str(app))
        if resolved is None:
            _LOGGER.error("Unknown app: %s", app)
            return False
        if not self._check(Capability.APPS, f"launching {resolved.name}"):
            return False
        return self.manager.launch_app(resolved)

    def wake(self, tv: Optional[DiscoveredTV] = None) -> bool:
        """Send a Wake-on-LAN packet.

        Args:
            tv: TV to wake (defaults to the connected TV). Works while
                disconnected as long as the TV's MAC address is known.
        """
        tv = tv or self.manager.connected_tv
        mac = tv.mac_address if tv else None
        if not mac:
            _LOGGER.warning("No MAC address known for the current TV")
            return False
        return wake_tv(mac)
