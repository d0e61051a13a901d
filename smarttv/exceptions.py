"""Exceptions for smart TV control."""


class SmartTVError(Exception):
    """Base class for all smarttv errors."""


class AccessDenied(SmartTVError):
    """The TV rejected the pairing request."""

    def __str__(self):
        return "Access denied by TV"


class PairingTimeout(SmartTVError):
    """Nobody answered the pairing prompt on the TV."""

    def __str__(self):
        return "Pairing request timed out on TV"


class HandshakeTimeout(SmartTVError):
    """The TV did not acknowledge the control channel in time."""

    def __init__(self, timeout: float):
        super().__init__(timeout)
        self.timeout = timeout

    def __str__(self):
        return f"Handshake timed out after {self.timeout:g}s"


class ConnectionFailed(SmartTVError):
    """The control channel could not be opened."""

    def __str__(self):
        detail = self.args[0] if self.args else None
        return f"Connection failed: {detail}" if detail else "Connection failed"


class ConnectionLost(SmartTVError):
    """The control channel transport closed unexpectedly."""

    def __str__(self):
        detail = self.args[0] if self.args else None
        return f"Connection lost: {detail}" if detail else "Connection lost"
