"""Async wrapper for smart TV discovery and control.

Provides an asyncio-compatible interface over AppContext.
Uses an executor to run the blocking operations in a thread pool.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, List, Optional, Union

from .apps import TVApp
from .context import AppContext
from .discovery import DiscoveredTV, generate_id
from .exceptions import HandshakeTimeout
from .keys import TVCommand
from .manager import ConnectionStatus

_LOGGER = logging.getLogger(__name__)

# Default thread pool for blocking operations
_DEFAULT_EXECUTOR: Optional[ThreadPoolExecutor] = None


def _get_executor() -> ThreadPoolExecutor:
    """Get or create the default thread pool executor."""
    global _DEFAULT_EXECUTOR
    if _DEFAULT_EXECUTOR is None:
        _DEFAULT_EXECUTOR = ThreadPoolExecutor(max_workers=4, thread_name_prefix="smarttv")
    return _DEFAULT_EXECUTOR


def tv_for_host(host: str, name: Optional[str] = None, mac_address: Optional[str] = None) -> DiscoveredTV:
    """Build a DiscoveredTV for a TV known only by address."""
    return DiscoveredTV(
        id=generate_id(host),
        name=name or host,
        ip_address=host,
        mac_address=mac_address,
        source="manual",
    )


class AsyncSmartTV:
    """Async facade for discovery and remote control.

    All blocking operations are run in a thread pool executor.

    Example usage:
        async with AsyncSmartTV() as tv:
            tvs = await tv.async_discover()
            await tv.async_connect(tvs[0])
            await tv.async_send_command(TVCommand.VOLUME_UP)
    """

    def __init__(
        self,
        context: Optional[AppContext] = None,
        executor: Optional[ThreadPoolExecutor] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        **context_kwargs: Any,
    ):
        """Initialize the async facade.

        Args:
            context: Existing AppContext (created lazily in the executor if None)
            executor: Custom ThreadPoolExecutor (uses default if None)
            loop: Event loop (uses current if None)
            **context_kwargs: Passed to AppContext.create()
        """
        self._executor = executor or _get_executor()
        self._loop = loop
        self._context = context
        self._context_kwargs = context_kwargs

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def _ensure_context(self) -> AppContext:
        """Create the context on first use (reads config from disk)."""
        if self._context is None:
            self._context = AppContext.create(**self._context_kwargs)
        return self._context

    async def _run_in_executor(self, func: Callable, *args, **kwargs) -> Any:
        """Run a sync function in the executor."""
        loop = self._get_loop()
        if kwargs:
            func = partial(func, **kwargs)
        return await loop.run_in_executor(self._executor, func, *args)

    # Properties (sync access is safe)
    @property
    def context(self) -> Optional[AppContext]:
        return self._context

    @property
    def is_connected(self) -> bool:
        return self._context.manager.is_connected if self._context else False

    @property
    def connection_status(self) -> ConnectionStatus:
        if self._context is None:
            return ConnectionStatus.DISCONNECTED
        return self._context.manager.connection_status

    @property
    def connected_tv(self) -> Optional[DiscoveredTV]:
        return self._context.manager.connected_tv if self._context else None

    @property
    def discovered_tvs(self) -> List[DiscoveredTV]:
        return self._context.scanner.discovered_tvs if self._context else []

    # Discovery
    async def async_discover(self, timeout: Optional[float] = None) -> List[DiscoveredTV]:
        """Run one scan session and return the TVs found."""
        def _discover():
            return self._ensure_context().scanner.discover(timeout)

        return await self._run_in_executor(_discover)

    async def async_stop_discovery(self) -> None:
        if self._context:
            await self._run_in_executor(self._context.scanner.stop_discovery)

    # Connection
    async def async_connect(
        self,
        tv: Union[DiscoveredTV, str],
        timeout: Optional[float] = None,
        raise_on_failure: bool = False,
    ) -> bool:
        """Connect to a TV and wait for the pairing outcome.

        Args:
            tv: DiscoveredTV, or a host address
            timeout: Seconds to wait (handshake timeout + 1 if None)
            raise_on_failure: Raise the failure instead of returning False

        Returns:
            True if connected

        Raises:
            SmartTVError: On failure when raise_on_failure is set
        """
        target = tv if isinstance(tv, DiscoveredTV) else tv_for_host(tv)

        def _connect():
            return self._ensure_context().connect(target, timeout)

        connected = await self._run_in_executor(_connect)
        if not connected and raise_on_failure:
            error = self._context.manager.error
            raise error or HandshakeTimeout(timeout or self._context.session.handshake_timeout)
        return connected

    async def async_disconnect(self) -> None:
        if self._context:
            await self._run_in_executor(self._context.manager.disconnect_from_tv)

    # Control
    async def async_send_command(self, command: Union[TVCommand, str]) -> bool:
        """Send a remote action (TVCommand, friendly name or key code)."""
        if self._context is None:
            return False
        remote = self._context.remote
        if isinstance(command, TVCommand):
            return await self._run_in_executor(remote.send, command)
        return await self._run_in_executor(remote.send_named, command)

    async def async_send_text(self, text: str) -> bool:
        if self._context is None:
            return False
        return await self._run_in_executor(self._context.remote.text, text)

    async def async_launch_app(self, app: Union[TVApp, str]) -> bool:
        if self._context is None:
            return False
        return await self._run_in_executor(self._context.remote.launch_app, app)

    async def async_wake(self, tv: Optional[DiscoveredTV] = None) -> bool:
        """Wake a TV (the connected one by default) with Wake-on-LAN."""
        if self._context is None:
            return False
        return await self._run_in_executor(self._context.remote.wake, tv)

    async def async_close(self) -> None:
        """Disconnect and release the context."""
        if self._context:
            await self._run_in_executor(self._context.close)
            self._context = None

    # Context manager support
    async def __aenter__(self) -> "AsyncSmartTV":
        await self._run_in_executor(self._ensure_context)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.async_close()
