"""Token storage for persistent authentication.

Stores the pairing token issued by the TV so later connections skip the
on-screen approval prompt. Tokens are keyed by application scope
(APP_TOKEN_KEY) unless per-device keys are requested, in which case the
TV host is the key.
"""

import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from .constants import APP_TOKEN_KEY

_LOGGER = logging.getLogger(__name__)


class TokenStorage:
    """Manages persistent storage of authentication tokens."""

    DEFAULT_STORAGE_PATH = Path.home() / ".config" / "smarttv" / "tokens.json"

    def __init__(self, storage_path: Optional[Path] = None):
        """Initialize token storage.

        Args:
            storage_path: Path to token storage file.
                Defaults to ~/.config/smarttv/tokens.json
        """
        self.storage_path = Path(storage_path) if storage_path else self.DEFAULT_STORAGE_PATH
        self._lock = threading.Lock()

    def _ensure_storage_dir(self):
        """Create storage directory if it doesn't exist."""
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)

    def _load_all(self) -> Dict[str, Any]:
        """Load all stored tokens."""
        if not self.storage_path.exists():
            return {}
        try:
            with open(self.storage_path, "r") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (json.JSONDecodeError, OSError):
            return {}

    def _save_all(self, data: Dict[str, Any]):
        """Save all tokens to storage, replacing the file atomically."""
        self._ensure_storage_dir()
        tmp_path = self.storage_path.with_suffix(self.storage_path.suffix + ".tmp")
        with open(tmp_path, "w") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.storage_path)

    def get_token(self, key: str = APP_TOKEN_KEY) -> Optional[str]:
        """Get the stored token.

        Args:
            key: Storage key (application scope or TV host)

        Returns:
            Token string or None if nothing stored
        """
        with self._lock:
            entry = self._load_all().get(key)
        if not entry:
            return None
        return entry.get("token")

    def save_token(self, token: str, key: str = APP_TOKEN_KEY, host: Optional[str] = None):
        """Save the token issued during pairing.

        Args:
            token: Token from the TV's connect acknowledgement
            key: Storage key (application scope or TV host)
            host: TV that issued the token, kept for reference
        """
        with self._lock:
            data = self._load_all()
            data[key] = {
                "token": token,
                "host": host,
                "saved_at": time.time(),
            }
            try:
                self._save_all(data)
            except OSError as e:
                _LOGGER.error("Failed to save token to %s: %s", self.storage_path, e)
                return
        _LOGGER.debug("Saved token under key %s", key)

    def delete_token(self, key: str = APP_TOKEN_KEY):
        """Delete the stored token for a key."""
        with self._lock:
            data = self._load_all()
            if key in data:
                del data[key]
                self._save_all(data)

    def list_tokens(self) -> List[Dict[str, Any]]:
        """List stored tokens without exposing their values.

        Returns:
            List of dicts with key, host and saved_at.
        """
        with self._lock:
            data = self._load_all()

        return [
            {
                "key": key,
                "host": entry.get("host"),
                "saved_at": entry.get("saved_at"),
            }
            for key, entry in data.items()
        ]

    def clear_all(self):
        """Clear all stored tokens."""
        with self._lock:
            self._save_all({})
