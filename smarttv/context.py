"""Application context: builds and tears down the service graph.

There are no module-level singletons. Whatever owns the presentation
layer (the CLI, the asyncio facade, a test) creates one AppContext,
uses its services and closes it.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .apps import AppController, AppLauncher
from .config import (
    DEFAULT_APP_NAME,
    DEVICE_INFO_TIMEOUT,
    HANDSHAKE_TIMEOUT,
    KEEPALIVE_INTERVAL,
    PROBE_TIMEOUT,
    SCAN_RANGE_END,
    SCAN_RANGE_START,
    SCAN_TIMEOUT,
    TokenStorage,
    get_config,
    validate_config,
)
from .discovery import DiscoveredTV
from .dispatch import SerialDispatcher
from .manager import ConnectionManager
from .remote import RemoteControl
from .scanner import NetworkScanner
from .search import ServiceSearch, SsdpServiceSearch
from .session import TVSession

_LOGGER = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Explicitly scoped application state."""

    config: Dict[str, Any]
    storage: TokenStorage
    dispatch: Any
    scanner: NetworkScanner
    session: TVSession
    manager: ConnectionManager
    remote: RemoteControl

    @classmethod
    def create(
        cls,
        config: Optional[Dict[str, Any]] = None,
        storage: Optional[TokenStorage] = None,
        dispatch: Any = None,
        search: Optional[ServiceSearch] = None,
        launcher: Optional[AppLauncher] = None,
        websocket_factory=None,
    ) -> "AppContext":
        """Build the services from configuration.

        Args:
            config: Configuration dict (loaded from disk if None)
            storage: Token storage (built from options.token_file if None)
            dispatch: State dispatcher (a new SerialDispatcher if None)
            search: Service search backend (SSDP if enabled in config)
            launcher: App launch backend (REST if None)
            websocket_factory: WebSocketApp factory for the session
        """
        config = config if config is not None else get_config()
        for error in validate_config(config):
            _LOGGER.warning("Config error: %s", error)

        discovery = config.get("discovery", {})
        options = config.get("options", {})

        if storage is None:
            token_file = options.get("token_file")
            storage = TokenStorage(Path(token_file).expanduser() if token_file else None)

        dispatch = dispatch or SerialDispatcher()

        if search is None and discovery.get("ssdp", True):
            search = SsdpServiceSearch()

        scanner = NetworkScanner(
            dispatch=dispatch,
            search=search,
            subnet_scan=discovery.get("subnet_scan", True),
            scan_timeout=discovery.get("scan_timeout", SCAN_TIMEOUT),
            probe_timeout=discovery.get("probe_timeout", PROBE_TIMEOUT),
            device_info_timeout=discovery.get("device_info_timeout", DEVICE_INFO_TIMEOUT),
            range_start=discovery.get("range_start", SCAN_RANGE_START),
            range_end=discovery.get("range_end", SCAN_RANGE_END),
        )

        session = TVSession(
            storage=storage,
            app_name=config.get("app_name") or DEFAULT_APP_NAME,
            handshake_timeout=options.get("handshake_timeout", HANDSHAKE_TIMEOUT),
            keepalive_interval=options.get("keepalive_interval", KEEPALIVE_INTERVAL),
            per_device_tokens=options.get("per_device_tokens", False),
            text_encoding=options.get("text_encoding", "raw"),
            websocket_factory=websocket_factory,
        )

        manager = ConnectionManager(session, dispatch=dispatch, apps=AppController(launcher))

        return cls(
            config=config,
            storage=storage,
            dispatch=dispatch,
            scanner=scanner,
            session=session,
            manager=manager,
            remote=RemoteControl(manager),
        )

    def connect(self, tv: DiscoveredTV, timeout: Optional[float] = None) -> bool:
        """Connect to a TV and wait for the outcome.

        The discovery service handle for the TV, if any, is passed along
        so apps can be launched.
        """
        self.manager.connect_to_tv(tv, self.scanner.get_service(tv))
        if timeout is None:
            timeout = self.session.handshake_timeout + 1.0
        return self.manager.wait_for_connection(timeout)

    def close(self):
        """Stop discovery, disconnect and release the dispatcher."""
        _LOGGER.debug("Closing application context")
        self.scanner.stop_discovery()
        self.manager.disconnect_from_tv()
        flush = getattr(self.dispatch, "flush", None)
        if flush is not None:
            flush(1.0)
        self.dispatch.shutdown()

    def __enter__(self) -> "AppContext":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
