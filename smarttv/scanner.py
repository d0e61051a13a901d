"""Network discovery service.

Owns the scan lifecycle and publishes a live, deduplicated list of
DiscoveredTV records from two strategies:
- SDK-driven: found/lost events from a ServiceSearch backend, resolved
  through a device-info fetch before publishing
- Active subnet probe: concurrent per-host probe chains over the local /24

Each scan session is bounded by a wall-clock budget. Results are
published through the dispatcher so list mutations happen on one
update path.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Callable, Dict, List, Optional

from .config import (
    DEVICE_INFO_TIMEOUT,
    PROBE_TIMEOUT,
    SCAN_RANGE_END,
    SCAN_RANGE_START,
    SCAN_TIMEOUT,
)
from .discovery import DiscoveredTV, Fetcher, get_local_ip, http_get, probe_host, subnet_hosts
from .dispatch import SerialDispatcher
from .search import Service, ServiceSearch

_LOGGER = logging.getLogger(__name__)

SAMSUNG = "Samsung"


class NetworkScanner:
    """Discover TVs on the local network."""

    def __init__(
        self,
        dispatch: Optional[Callable] = None,
        search: Optional[ServiceSearch] = None,
        subnet_scan: bool = True,
        scan_timeout: float = SCAN_TIMEOUT,
        probe_timeout: float = PROBE_TIMEOUT,
        device_info_timeout: float = DEVICE_INFO_TIMEOUT,
        range_start: int = SCAN_RANGE_START,
        range_end: int = SCAN_RANGE_END,
        max_workers: Optional[int] = None,
        local_ip: Optional[str] = None,
        fetch: Fetcher = http_get,
        on_update: Optional[Callable[[List[DiscoveredTV]], None]] = None,
    ):
        """Initialize the scanner.

        Args:
            dispatch: Serial executor for published-state updates (an owned
                SerialDispatcher if None; close() releases it)
            search: Service search backend for the SDK-driven strategy
            subnet_scan: Enable the active subnet probe
            scan_timeout: Wall-clock budget of one scan session
            probe_timeout: Timeout of each HTTP probe
            device_info_timeout: Timeout of the device-info fetch
            range_start: First last-octet value to probe
            range_end: Last last-octet value to probe (inclusive)
            max_workers: Probe thread count (default one per host)
            local_ip: Override local IP detection
            fetch: HTTP fetch function used by probes
            on_update: Called on the dispatcher with the new TV list
        """
        self._owns_dispatch = dispatch is None
        self._dispatch = dispatch or SerialDispatcher("smarttv_scanner")
        self.search = search
        self.subnet_scan = subnet_scan
        self.scan_timeout = scan_timeout
        self.probe_timeout = probe_timeout
        self.device_info_timeout = device_info_timeout
        self.range_start = range_start
        self.range_end = range_end
        self.max_workers = max_workers
        self.local_ip = local_ip
        self.fetch = fetch
        self.on_update = on_update

        self._lock = threading.RLock()
        self._scan_id = 0
        self._active_scan: Optional[int] = None
        self._cancel = threading.Event()
        self._finished = threading.Event()
        self._finished.set()
        self._budget_timer: Optional[threading.Timer] = None
        self._pool: Optional[ThreadPoolExecutor] = None
        self._pending = 0

        # Published state, mutated only on the dispatcher
        self._tvs: List[DiscoveredTV] = []
        self._services: Dict[str, Service] = {}

    @property
    def discovered_tvs(self) -> List[DiscoveredTV]:
        """Snapshot of the discovered TVs."""
        return list(self._tvs)

    @property
    def is_scanning(self) -> bool:
        return self._active_scan is not None

    def get_service(self, tv: DiscoveredTV) -> Optional[Service]:
        """Get the search backend's service handle for a TV, if it has one."""
        return self._services.get(tv.id)

    def start_discovery(self, timeout: Optional[float] = None):
        """Start a fresh scan session.

        Calling this while a scan is running restarts it: the running
        scan's probes are cancelled and prior results are cleared.

        Args:
            timeout: Scan budget for this session only (scan_timeout if None)
        """
        budget = self.scan_timeout if timeout is None else timeout
        with self._lock:
            if self.is_scanning:
                _LOGGER.debug("Restarting discovery")
                self.stop_discovery()

            self._scan_id += 1
            scan_id = self._scan_id
            self._active_scan = scan_id
            self._cancel = threading.Event()
            self._finished.clear()
            self._dispatch(self._reset, scan_id)

            _LOGGER.info("Starting discovery (budget %ss)", budget)

            hosts = self._hosts() if self.subnet_scan else []
            workers = self.max_workers or max(len(hosts), 4)
            self._pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="smarttv_probe")

            if self.search is not None:
                self.search.start(
                    partial(self._on_service_found, scan_id),
                    partial(self._on_service_lost, scan_id),
                )

            self._pending = len(hosts)
            for ip in hosts:
                future = self._pool.submit(
                    probe_host, ip, self.probe_timeout, self.fetch, self._cancel
                )
                future.add_done_callback(partial(self._on_probe_done, scan_id, ip))
                if self._active_scan != scan_id:
                    # Every probe already finished and the scan ended
                    return

            self._budget_timer = threading.Timer(
                budget, self._on_budget_expired, args=(scan_id, budget)
            )
            self._budget_timer.daemon = True
            self._budget_timer.start()

    def stop_discovery(self):
        """Stop the current scan session.

        Cancels outstanding probes and the search subscription without
        waiting for them. Published results are kept. Safe to call when
        no scan is running.
        """
        with self._lock:
            was_scanning = self.is_scanning
            self._active_scan = None
            self._cancel.set()

            if self._budget_timer is not None:
                self._budget_timer.cancel()
                self._budget_timer = None

            if self._pool is not None:
                self._pool.shutdown(wait=False, cancel_futures=True)
                self._pool = None

            if self.search is not None and was_scanning:
                self.search.stop()

            self._finished.set()

        if was_scanning:
            _LOGGER.info("Discovery stopped (%d TV(s) found)", len(self._tvs))

    def discover(self, timeout: Optional[float] = None) -> List[DiscoveredTV]:
        """Run one scan session to completion and return its results.

        Args:
            timeout: Override the scan budget for this session

        Returns:
            List of discovered TVs
        """
        budget = self.scan_timeout if timeout is None else timeout
        self.start_discovery(budget)
        self._finished.wait(budget + 1.0)
        self.stop_discovery()
        self._dispatch_flush(budget)
        return self.discovered_tvs

    def close(self):
        """Stop discovery and release the dispatcher if this scanner owns it."""
        self.stop_discovery()
        if self._owns_dispatch:
            self._dispatch.shutdown()

    def _dispatch_flush(self, timeout: float):
        flush = getattr(self._dispatch, "flush", None)
        if flush is not None:
            flush(timeout)

    def _hosts(self) -> List[str]:
        local_ip = self.local_ip or get_local_ip()
        if not local_ip:
            _LOGGER.warning("Could not determine local IP, skipping subnet scan")
            return []
        hosts = subnet_hosts(local_ip, self.range_start, self.range_end)
        _LOGGER.debug("Probing %d host(s) around %s", len(hosts), local_ip)
        return hosts

    def _on_budget_expired(self, scan_id: int, budget: float):
        if self._active_scan == scan_id:
            _LOGGER.debug("Scan budget of %ss reached", budget)
            # Queued results from before the deadline are applied first
            self._dispatch(self._end_scan, scan_id)

    # Worker thread callbacks

    def _on_probe_done(self, scan_id: int, ip: str, future: Future):
        if future.cancelled():
            return
        try:
            tv = future.result()
        except Exception as e:
            _LOGGER.debug("Probe of %s failed: %s", ip, e)
            tv = None

        if tv is not None:
            self._dispatch(self._add_tv, scan_id, tv)

        with self._lock:
            if self._active_scan != scan_id:
                return
            self._pending -= 1
            all_done = self._pending <= 0 and self.search is None
        if all_done:
            _LOGGER.debug("All probes finished")
            self._dispatch(self._end_scan, scan_id)

    def _on_service_found(self, scan_id: int, service: Service):
        if self._active_scan != scan_id:
            return
        pool = self._pool
        if pool is None:
            return
        try:
            pool.submit(self._resolve_service, scan_id, service)
        except RuntimeError:
            # Pool shut down by a concurrent stop
            pass

    def _on_service_lost(self, scan_id: int, service: Service):
        self._dispatch(self._remove_service, scan_id, service)

    def _resolve_service(self, scan_id: int, service: Service):
        """Fetch device info for a found service, then publish it."""
        info = self.search.get_device_info(service, self.device_info_timeout) or {}
        device = info.get("device") if isinstance(info.get("device"), dict) else {}

        tv = DiscoveredTV(
            id=service.id,
            name=device.get("name") or info.get("name") or service.name,
            manufacturer=SAMSUNG,
            ip_address=service.host,
            model_name=device.get("modelName"),
            mac_address=device.get("wifiMac"),
            source="sdk",
            raw_data=info,
        )
        self._dispatch(self._add_tv, scan_id, tv, service)

    # Dispatcher-side mutations

    # The lock keeps check-then-append atomic when an inline dispatcher
    # runs these on worker threads.

    def _reset(self, scan_id: int):
        with self._lock:
            if scan_id != self._scan_id:
                return
            self._tvs = []
            self._services = {}
        self._notify()

    def _add_tv(self, scan_id: int, tv: DiscoveredTV, service: Optional[Service] = None):
        with self._lock:
            if self._active_scan != scan_id:
                _LOGGER.debug("Dropping result from finished scan: %s", tv.ip_address)
                return
            for existing in self._tvs:
                if existing.same_device(tv):
                    _LOGGER.debug("Already discovered: %s", tv.ip_address)
                    return

            self._tvs.append(tv)
            if service is not None:
                self._services[tv.id] = service
        _LOGGER.info("Discovered %s (%s) at %s", tv.name, tv.manufacturer, tv.ip_address)
        self._notify()

    def _remove_service(self, scan_id: int, service: Service):
        with self._lock:
            if self._active_scan != scan_id:
                return
            before = len(self._tvs)
            self._tvs = [
                tv for tv in self._tvs
                if not (tv.source == "sdk" and (tv.id == service.id or tv.name == service.name))
            ]
            self._services.pop(service.id, None)
            removed = len(self._tvs) != before
        if removed:
            _LOGGER.info("Removed lost TV: %s", service.name)
            self._notify()

    def _end_scan(self, scan_id: int):
        if self._active_scan == scan_id:
            self.stop_discovery()

    def _notify(self):
        if self.on_update is not None:
            self.on_update(self.discovered_tvs)
