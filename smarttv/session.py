"""Samsung TV control channel session.

Owns one authenticated, persistent WebSocket connection to one TV at a
time. The transport runs on a background thread (websocket-client's
run_forever); pairing, keep-alive and loss detection drive the
ConnectionPhase state machine:

    DISCONNECTED -> CONNECTING -> CONNECTED
    CONNECTING -> FAILED
    CONNECTED / FAILED -> DISCONNECTED

Phase changes are reported through ``on_phase_change(phase, error)``,
always called without the session lock held.
"""

import logging
import threading
from enum import Enum
from functools import partial
from typing import Callable, Optional, Tuple

import websocket

from .config import (
    APP_TOKEN_KEY,
    DEFAULT_APP_NAME,
    HANDSHAKE_TIMEOUT,
    KEEPALIVE_INTERVAL,
    TokenStorage,
)
from .exceptions import (
    AccessDenied,
    ConnectionFailed,
    ConnectionLost,
    HandshakeTimeout,
    PairingTimeout,
    SmartTVError,
)
from .keys import TVCommand, get_key_code
from .protocol import (
    ChannelConnect,
    ChannelTimeout,
    ChannelUnauthorized,
    Disconnect,
    InputString,
    KeyPress,
    OutboundMessage,
    build_url,
    decode,
    encode,
    ssl_options,
)

_LOGGER = logging.getLogger(__name__)


class ConnectionPhase(Enum):
    """Control channel state."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


PhaseCallback = Callable[[ConnectionPhase, Optional[SmartTVError]], None]


class TVSession:
    """Persistent control channel to a single Samsung TV."""

    def __init__(
        self,
        storage: Optional[TokenStorage] = None,
        app_name: str = DEFAULT_APP_NAME,
        handshake_timeout: float = HANDSHAKE_TIMEOUT,
        keepalive_interval: float = KEEPALIVE_INTERVAL,
        per_device_tokens: bool = False,
        text_encoding: str = "raw",
        websocket_factory: Optional[Callable[..., websocket.WebSocketApp]] = None,
        on_phase_change: Optional[PhaseCallback] = None,
    ):
        """Initialize the session.

        Args:
            storage: Durable token storage (tokens are not persisted if None)
            app_name: Name shown in the TV's pairing prompt
            handshake_timeout: Seconds to wait for the connect acknowledgement
            keepalive_interval: Seconds between liveness pings
            per_device_tokens: Key stored tokens by host instead of app-wide
            text_encoding: "raw" or "base64" text input layout
            websocket_factory: Builds the WebSocketApp (injected in tests)
            on_phase_change: Callback for phase changes
        """
        self.storage = storage
        self.app_name = app_name
        self.handshake_timeout = handshake_timeout
        self.keepalive_interval = keepalive_interval
        self.per_device_tokens = per_device_tokens
        self.text_encoding = text_encoding
        self.on_phase_change = on_phase_change
        self._factory = websocket_factory or websocket.WebSocketApp

        # Published state
        self.host: Optional[str] = None
        self.phase = ConnectionPhase.DISCONNECTED
        self.auth_token: Optional[str] = None
        self.is_authenticated = False
        self.last_error: Optional[SmartTVError] = None

        self._lock = threading.RLock()
        self._send_lock = threading.Lock()
        self._generation = 0
        self._ws: Optional[websocket.WebSocketApp] = None
        self._thread: Optional[threading.Thread] = None
        self._handshake_timer: Optional[threading.Timer] = None
        self._keepalive_stop = threading.Event()
        self._transport_error: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return self.phase == ConnectionPhase.CONNECTED

    def _token_key(self, host: str) -> str:
        return host if self.per_device_tokens else APP_TOKEN_KEY

    def connect_to_tv(self, host: str):
        """Open the control channel to a TV.

        Any existing channel is torn down first. Returns immediately;
        the outcome arrives through on_phase_change.

        Args:
            host: TV IP address or hostname
        """
        with self._lock:
            self._teardown()
            self._generation += 1
            generation = self._generation

            self.host = host
            self.is_authenticated = False
            self.last_error = None
            self._transport_error = None
            self.auth_token = self.storage.get_token(self._token_key(host)) if self.storage else None

            url = build_url(host, self.app_name, self.auth_token)
            _LOGGER.info("Connecting to TV at %s%s", host, " with saved token" if self.auth_token else "")

            ws = self._factory(
                url,
                on_open=partial(self._on_open, generation),
                on_message=partial(self._on_message, generation),
                on_error=partial(self._on_error, generation),
                on_close=partial(self._on_close, generation),
            )
            self._ws = ws
            self.phase = ConnectionPhase.CONNECTING

            self._handshake_timer = threading.Timer(
                self.handshake_timeout, self._on_handshake_timeout, args=(generation,)
            )
            self._handshake_timer.daemon = True
            self._handshake_timer.start()

            thread = threading.Thread(
                target=self._run, args=(ws, generation, host), name="smarttv_session", daemon=True
            )
            self._thread = thread

        # Transport callbacks must not overtake the CONNECTING notification
        self._notify(ConnectionPhase.CONNECTING, None)
        thread.start()

    def disconnect_tv(self):
        """Close the control channel.

        Sends a best-effort disconnect notice when connected, then closes
        the transport. Safe to call in any phase.
        """
        with self._lock:
            previous = self.phase
            ws = self._ws
            if previous == ConnectionPhase.CONNECTED and ws is not None:
                self._transmit(ws, Disconnect())

            self._teardown()
            self._generation += 1
            self.host = None
            self.is_authenticated = False
            self.phase = ConnectionPhase.DISCONNECTED

        if previous != ConnectionPhase.DISCONNECTED:
            _LOGGER.info("Disconnected from TV")
            self._notify(ConnectionPhase.DISCONNECTED, None)

    def send_command(self, command: TVCommand) -> bool:
        """Send a remote key press.

        Args:
            command: Remote action

        Returns:
            True if the message was transmitted
        """
        return self.send_key(get_key_code(command))

    def send_key(self, key: str) -> bool:
        """Send a raw key code such as KEY_VOLUP."""
        return self._send(KeyPress(key))

    def send_text(self, text: str) -> bool:
        """Send text to the TV's active input field."""
        return self._send(InputString(text, self.text_encoding))

    def _send(self, message: OutboundMessage) -> bool:
        ws = self._ws
        if self.phase != ConnectionPhase.CONNECTED or ws is None:
            _LOGGER.warning("Not connected to TV, dropping %s", type(message).__name__)
            return False
        return self._transmit(ws, message)

    def _transmit(self, ws: websocket.WebSocketApp, message: OutboundMessage) -> bool:
        frame = encode(message)
        with self._send_lock:
            try:
                ws.send(frame)
            except (websocket.WebSocketException, OSError) as e:
                _LOGGER.warning("Failed to send %s: %s", type(message).__name__, e)
                return False
        _LOGGER.debug("Sent %s", frame)
        return True

    def _teardown(self):
        """Cancel timers and close the transport. Caller holds the lock."""
        if self._handshake_timer is not None:
            self._handshake_timer.cancel()
            self._handshake_timer = None

        self._keepalive_stop.set()

        ws = self._ws
        self._ws = None
        self._thread = None
        if ws is not None:
            try:
                ws.close()
            except (websocket.WebSocketException, OSError) as e:
                _LOGGER.debug("Error closing transport: %s", e)

    def _notify(self, phase: ConnectionPhase, error: Optional[SmartTVError]):
        callback = self.on_phase_change
        if callback is not None:
            callback(phase, error)

    def _fail(self, generation: int, error: SmartTVError):
        """Abort the current attempt with an error."""
        with self._lock:
            if generation != self._generation:
                return
            _LOGGER.warning("Connection to %s failed: %s", self.host, error)
            self._teardown()
            self._generation += 1
            self.is_authenticated = False
            self.last_error = error
            self.phase = ConnectionPhase.FAILED
        self._notify(ConnectionPhase.FAILED, error)

    def _run(self, ws: websocket.WebSocketApp, generation: int, host: str):
        """Transport thread body."""
        if generation != self._generation:
            return
        try:
            ws.run_forever(sslopt=ssl_options(host))
        except Exception as e:
            self._transport_error = str(e)
            _LOGGER.debug("Transport error: %s", e)
        self._handle_closed(generation)

    def _keepalive(self, ws: websocket.WebSocketApp, stop: threading.Event):
        """Ping now, then every keepalive_interval until stopped."""
        self._ping(ws)
        while not stop.wait(self.keepalive_interval):
            self._ping(ws)

    @staticmethod
    def _ping(ws: websocket.WebSocketApp):
        try:
            ws.send("", websocket.ABNF.OPCODE_PING)
        except (websocket.WebSocketException, OSError) as e:
            _LOGGER.debug("Ping failed: %s", e)

    def _handle_closed(self, generation: int):
        notification: Optional[Tuple[ConnectionPhase, SmartTVError]] = None
        with self._lock:
            if generation != self._generation:
                return
            reason = self._transport_error
            if self.phase == ConnectionPhase.CONNECTING:
                error = ConnectionFailed(reason) if reason else ConnectionFailed()
                notification = (ConnectionPhase.FAILED, error)
            elif self.phase == ConnectionPhase.CONNECTED:
                error = ConnectionLost(reason) if reason else ConnectionLost()
                notification = (ConnectionPhase.DISCONNECTED, error)
            else:
                return

            _LOGGER.warning("%s (%s)", error, self.host)
            self._teardown()
            self._generation += 1
            self.is_authenticated = False
            self.last_error = error
            self.phase = notification[0]
            if self.phase == ConnectionPhase.DISCONNECTED:
                self.host = None

        self._notify(*notification)

    # WebSocketApp callbacks, bound to the generation that created them

    def _on_open(self, generation: int, ws: websocket.WebSocketApp):
        with self._lock:
            if generation != self._generation:
                return
            _LOGGER.debug("Transport open to %s, waiting for pairing", self.host)
            self._keepalive_stop = threading.Event()
            threading.Thread(
                target=self._keepalive,
                args=(ws, self._keepalive_stop),
                name="smarttv_keepalive",
                daemon=True,
            ).start()

    def _on_message(self, generation: int, ws: websocket.WebSocketApp, message):
        if generation != self._generation:
            return

        event = decode(message)
        if event is None:
            return

        if isinstance(event, ChannelConnect):
            self._on_channel_connect(generation, event)
        elif isinstance(event, ChannelUnauthorized):
            self._fail(generation, AccessDenied())
        elif isinstance(event, ChannelTimeout):
            self._fail(generation, PairingTimeout())

    def _on_channel_connect(self, generation: int, event: ChannelConnect):
        with self._lock:
            if generation != self._generation or self.phase != ConnectionPhase.CONNECTING:
                return

            if self._handshake_timer is not None:
                self._handshake_timer.cancel()
                self._handshake_timer = None

            if event.token:
                self.auth_token = event.token
                if self.storage is not None:
                    self.storage.save_token(event.token, self._token_key(self.host), host=self.host)
                _LOGGER.info("Received token from TV")

            self.is_authenticated = True
            self.phase = ConnectionPhase.CONNECTED
            _LOGGER.info("Connected to TV at %s", self.host)

        self._notify(ConnectionPhase.CONNECTED, None)

    def _on_error(self, generation: int, ws: websocket.WebSocketApp, error):
        if generation != self._generation:
            return
        self._transport_error = str(error)
        _LOGGER.debug("Transport error: %s", error)

    def _on_close(self, generation: int, ws: websocket.WebSocketApp, *args):
        self._handle_closed(generation)

    def _on_handshake_timeout(self, generation: int):
        with self._lock:
            if generation != self._generation or self.phase != ConnectionPhase.CONNECTING:
                return
        self._fail(generation, HandshakeTimeout(self.handshake_timeout))
