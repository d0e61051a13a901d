"""Single owner context for published state.

Network results arrive on worker threads; every mutation of published
state (discovered TVs, connection status) is marshalled through one of
these dispatchers so updates happen one at a time, in submission order.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

_LOGGER = logging.getLogger(__name__)


class SerialDispatcher:
    """Run submitted callables sequentially on a single dedicated thread."""

    def __init__(self, name: str = "smarttv_state"):
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._closed = False

    def __call__(self, fn: Callable[..., Any], *args: Any) -> Optional[Future]:
        """Queue fn(*args) on the owner thread."""
        if self._closed:
            _LOGGER.debug("Dispatcher closed, dropping %s", getattr(fn, "__name__", fn))
            return None
        try:
            return self._executor.submit(self._run, fn, *args)
        except RuntimeError:
            # Executor shut down between the check and submit
            return None

    @staticmethod
    def _run(fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return fn(*args)
        except Exception:
            _LOGGER.exception("State update %s failed", getattr(fn, "__name__", fn))
            raise

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait until everything queued so far has run.

        Returns:
            True if the queue drained within the timeout
        """
        future = self(lambda: None)
        if future is None:
            return True
        try:
            future.result(timeout=timeout)
            return True
        except Exception:
            return False

    def shutdown(self, wait: bool = True):
        """Stop accepting work and release the owner thread."""
        self._closed = True
        self._executor.shutdown(wait=wait)


class InlineDispatcher:
    """Run submitted callables immediately on the calling thread.

    Useful for scripts and tests where a separate owner thread only adds
    nondeterminism.
    """

    def __call__(self, fn: Callable[..., Any], *args: Any) -> None:
        fn(*args)

    def flush(self, timeout: Optional[float] = None) -> bool:
        return True

    def shutdown(self, wait: bool = True):
        pass
