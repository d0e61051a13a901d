"""Connection manager.

Mediates between user intent and the TV session: owns the single
"current TV" and publishes its connection status. Session callbacks
arrive on transport threads and are marshalled through the dispatcher
before they touch published state.
"""

import logging
import threading
from enum import Enum
from functools import partial
from typing import Callable, Optional

from .apps import AppController, TVApp
from .discovery import DiscoveredTV
from .dispatch import SerialDispatcher
from .exceptions import SmartTVError
from .keys import TVCommand
from .search import Service
from .session import ConnectionPhase, TVSession

_LOGGER = logging.getLogger(__name__)


class ConnectionStatus(Enum):
    """Connection status shown to the user."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"

    @property
    def message(self) -> str:
        return STATUS_MESSAGES[self]


STATUS_MESSAGES = {
    ConnectionStatus.DISCONNECTED: "Disconnected",
    ConnectionStatus.CONNECTING: "Connecting...",
    ConnectionStatus.CONNECTED: "Connected",
    ConnectionStatus.FAILED: "Connection failed",
}


class ConnectionManager:
    """Single point of control for the current TV connection."""

    def __init__(
        self,
        session: TVSession,
        dispatch: Optional[Callable] = None,
        apps: Optional[AppController] = None,
        on_status_change: Optional[Callable[[ConnectionStatus], None]] = None,
    ):
        """Initialize the manager.

        Args:
            session: Control channel session (owned by this manager)
            dispatch: Serial executor for published-state updates (an owned
                SerialDispatcher if None; close() releases it)
            apps: App launch controller
            on_status_change: Called on the dispatcher after each status change
        """
        self.session = session
        self.apps = apps or AppController()
        self.on_status_change = on_status_change
        self._owns_dispatch = dispatch is None
        self._dispatch = dispatch or SerialDispatcher("smarttv_manager")

        # Published state, mutated only on the dispatcher
        self.is_connected = False
        self.connected_tv: Optional[DiscoveredTV] = None
        self.connection_status = ConnectionStatus.DISCONNECTED
        self.last_error: Optional[str] = None
        self.error: Optional[SmartTVError] = None

        self._candidate: Optional[DiscoveredTV] = None
        self._attempt = 0
        self._settled = threading.Event()
        self._settled.set()

    @property
    def status_message(self) -> str:
        if self.connection_status == ConnectionStatus.FAILED and self.last_error:
            return f"{self.connection_status.message}: {self.last_error}"
        return self.connection_status.message

    @property
    def has_app_service(self) -> bool:
        return self.apps.service is not None

    def connect_to_tv(self, tv: DiscoveredTV, service: Optional[Service] = None):
        """Start connecting to a TV.

        Any current connection or attempt is closed first. Returns
        immediately; watch connection_status or use wait_for_connection().

        Args:
            tv: TV to connect to
            service: Service handle from discovery, used for app launching
        """
        if self.connection_status != ConnectionStatus.DISCONNECTED or (
            self.session.phase != ConnectionPhase.DISCONNECTED
        ):
            self.disconnect_from_tv()

        self._attempt += 1
        attempt = self._attempt
        self._settled.clear()

        _LOGGER.info("Connecting to %s (%s)", tv.name, tv.host)
        self._dispatch(self._begin, attempt, tv)
        self.apps.connect_to_service(service)
        self.session.on_phase_change = partial(self._on_phase_change, attempt)
        self.session.connect_to_tv(tv.host)

    def disconnect_from_tv(self):
        """Disconnect and reset all published state. Idempotent."""
        self._attempt += 1
        self.session.on_phase_change = None
        self.session.disconnect_tv()
        self.apps.disconnect_all_apps()
        self._dispatch(self._reset, self._attempt)

    def close(self):
        """Disconnect and release the dispatcher if this manager owns it."""
        self.disconnect_from_tv()
        if self._owns_dispatch:
            self._dispatch.flush(1.0)
            self._dispatch.shutdown()

    def wait_for_connection(self, timeout: Optional[float] = None) -> bool:
        """Block until the current attempt succeeds or fails.

        Returns:
            True if connected
        """
        self._settled.wait(timeout)
        flush = getattr(self._dispatch, "flush", None)
        if flush is not None:
            flush(timeout)
        return self.is_connected

    def send_command(self, command: TVCommand) -> bool:
        """Send a remote action to the connected TV."""
        if not self.is_connected:
            _LOGGER.warning("Not connected to TV, ignoring %s", command.name)
            return False
        return self.session.send_command(command)

    def send_key(self, key: str) -> bool:
        """Send a raw key code to the connected TV."""
        if not self.is_connected:
            _LOGGER.warning("Not connected to TV, ignoring %s", key)
            return False
        return self.session.send_key(key)

    def send_text(self, text: str) -> bool:
        """Send text input to the connected TV."""
        if not self.is_connected:
            _LOGGER.warning("Not connected to TV, ignoring text input")
            return False
        return self.session.send_text(text)

    def launch_app(self, app: TVApp) -> bool:
        """Launch an app through the service handle kept at connect time."""
        if not self.is_connected:
            _LOGGER.warning("Not connected to TV, cannot launch %s", app.name)
            return False
        return self.apps.launch_app(app)

    def install_app(self, app: TVApp) -> bool:
        """Open an app's store page on the connected TV."""
        if not self.is_connected:
            _LOGGER.warning("Not connected to TV, cannot install %s", app.name)
            return False
        return self.apps.install_app(app)

    def _on_phase_change(self, attempt: int, phase: ConnectionPhase, error: Optional[SmartTVError]):
        self._dispatch(self._apply_phase, attempt, phase, error)

    # Dispatcher-side mutations

    def _begin(self, attempt: int, tv: DiscoveredTV):
        if attempt != self._attempt:
            return
        self._candidate = tv
        self.last_error = None
        self.error = None
        self._set_status(ConnectionStatus.CONNECTING)

    def _apply_phase(self, attempt: int, phase: ConnectionPhase, error: Optional[SmartTVError]):
        if attempt != self._attempt:
            _LOGGER.debug("Ignoring %s from a previous attempt", phase.value)
            return

        if phase == ConnectionPhase.CONNECTING:
            self._set_status(ConnectionStatus.CONNECTING)
            return

        if phase == ConnectionPhase.CONNECTED:
            self.is_connected = True
            self.connected_tv = self._candidate
            self.last_error = None
            self.error = None
            self._set_status(ConnectionStatus.CONNECTED)
        else:
            self.is_connected = False
            self.connected_tv = None
            self._candidate = None
            self.error = error
            self.last_error = str(error) if error else None
            if error is not None:
                self.apps.disconnect_all_apps()
            status = ConnectionStatus.FAILED if phase == ConnectionPhase.FAILED else ConnectionStatus.DISCONNECTED
            self._set_status(status)

        self._settled.set()

    def _reset(self, attempt: int):
        self.is_connected = False
        self.connected_tv = None
        self._candidate = None
        self.last_error = None
        self.error = None
        self._set_status(ConnectionStatus.DISCONNECTED)
        if attempt == self._attempt:
            self._settled.set()

    def _set_status(self, status: ConnectionStatus):
        changed = status != self.connection_status
        self.connection_status = status
        if changed:
            _LOGGER.debug("Connection status: %s", status.value)
            if self.on_status_change is not None:
                self.on_status_change(status)
