"""TV app catalog and launching.

Apps are launched through a vendor app-launch backend reached via the
service handle retained at discovery time. The AppLauncher interface is
the only thing the rest of the package depends on; RestAppLauncher talks
to the TV's REST API on port 8001.
"""

import json
import logging
import threading
import urllib.error
import urllib.request
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

from .config import APP_DISCONNECT_DELAY, REST_PORT
from .search import Service

_LOGGER = logging.getLogger(__name__)

CHANNEL_URI_PREFIX = "com.samsung.multiscreen.tvapp."


@dataclass(frozen=True)
class TVApp:
    """App installable on a Samsung TV."""
    id: str
    name: str

    @property
    def channel_uri(self) -> str:
        return CHANNEL_URI_PREFIX + self.name.lower()


SAMSUNG_APPS: List[TVApp] = [
    TVApp("111299001912", "YouTube"),
    TVApp("3201907018807", "Netflix"),
    TVApp("3201901017640", "Disney+"),
    TVApp("3201512006785", "Amazon Prime Video"),
    TVApp("3201601007625", "Hulu"),
    TVApp("3201601007230", "HBO Max"),
    TVApp("3201506003488", "Twitch"),
    TVApp("111012010001", "Samsung Internet"),
    TVApp("org.tizen.browser", "Web Browser"),
]

# Short names accepted by get_app()
APP_ALIASES: Dict[str, str] = {
    "youtube": "111299001912",
    "netflix": "3201907018807",
    "disney": "3201901017640",
    "disney+": "3201901017640",
    "prime": "3201512006785",
    "amazon": "3201512006785",
    "hulu": "3201601007625",
    "hbo": "3201601007230",
    "max": "3201601007230",
    "twitch": "3201506003488",
    "internet": "111012010001",
    "browser": "org.tizen.browser",
}


def get_app(name: str) -> Optional[TVApp]:
    """Look up an app by alias, display name or app id."""
    key = name.lower().strip()
    app_id = APP_ALIASES.get(key, name.strip())
    for app in SAMSUNG_APPS:
        if app.id == app_id or app.name.lower() == key:
            return app
    return None


@dataclass
class Application:
    """Remote application channel created by an AppLauncher."""
    host: str
    app_id: str
    channel_uri: str
    connected: bool = False


class AppLauncher(ABC):
    """Vendor app-launch backend."""

    @abstractmethod
    def create_application(self, service: Service, app_id: str, channel_uri: str) -> Optional[Application]:
        """Create an application handle on the service's TV."""

    @abstractmethod
    def connect(self, application: Application) -> bool:
        """Start the application. Returns True on success."""

    @abstractmethod
    def disconnect(self, application: Application) -> bool:
        """Release the application channel."""

    @abstractmethod
    def install(self, application: Application) -> bool:
        """Open the application's store page on the TV."""


class RestAppLauncher(AppLauncher):
    """App launcher using the TV's /api/v2/applications endpoint."""

    def __init__(self, port: int = REST_PORT, timeout: float = 5.0):
        self.port = port
        self.timeout = timeout

    def _url(self, application: Application) -> str:
        return f"http://{application.host}:{self.port}/api/v2/applications/{application.app_id}"

    def _request(self, application: Application, method: str) -> Optional[dict]:
        request = urllib.request.Request(
            self._url(application),
            data=b"" if method in ("POST", "PUT") else None,
            method=method,
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                body = response.read().decode("utf-8", errors="ignore")
        except (urllib.error.URLError, OSError) as e:
            _LOGGER.warning("%s %s failed: %s", method, self._url(application), e)
            return None

        if not body:
            return {}
        try:
            payload = json.loads(body)
        except ValueError:
            return {"raw": body}
        return payload if isinstance(payload, dict) else {"result": payload}

    def create_application(self, service: Service, app_id: str, channel_uri: str) -> Optional[Application]:
        if not service.host:
            return None
        return Application(host=service.host, app_id=app_id, channel_uri=channel_uri)

    def connect(self, application: Application) -> bool:
        if self._request(application, "POST") is None:
            return False
        application.connected = True
        return True

    def disconnect(self, application: Application) -> bool:
        # The REST API keeps no per-client channel; DELETE would close the app itself
        application.connected = False
        return True

    def install(self, application: Application) -> bool:
        return self._request(application, "PUT") is not None


class AppController:
    """Launch catalog apps on the connected TV and track open app channels."""

    def __init__(
        self,
        launcher: Optional[AppLauncher] = None,
        disconnect_delay: float = APP_DISCONNECT_DELAY,
    ):
        self.launcher = launcher or RestAppLauncher()
        self.disconnect_delay = disconnect_delay
        self.service: Optional[Service] = None
        self._applications: Dict[str, Application] = {}
        self._timers: Dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def connect_to_service(self, service: Optional[Service]):
        """Remember the service handle apps are launched through."""
        self.service = service
        if service is not None:
            _LOGGER.debug("App launch service: %s", service.uri)

    def _create(self, app: TVApp) -> Optional[Application]:
        if self.service is None:
            _LOGGER.warning("Cannot launch %s: no app launch service for this TV", app.name)
            return None
        application = self.launcher.create_application(self.service, app.id, app.channel_uri)
        if application is None:
            _LOGGER.warning("Failed to create application for %s", app.name)
        return application

    def launch_app(self, app: TVApp) -> bool:
        """Launch an app, then release its channel after a short delay.

        Returns:
            True if the TV accepted the launch
        """
        application = self._create(app)
        if application is None:
            return False

        _LOGGER.info("Launching %s (%s)", app.name, app.id)
        if not self.launcher.connect(application):
            _LOGGER.warning("Failed to launch %s", app.name)
            return False

        with self._lock:
            previous = self._timers.pop(app.id, None)
            if previous is not None:
                previous.cancel()
            self._applications[app.id] = application
            timer = threading.Timer(self.disconnect_delay, self._release, args=(app.id, application))
            timer.daemon = True
            self._timers[app.id] = timer
        timer.start()
        return True

    def install_app(self, app: TVApp) -> bool:
        """Open an app's store page on the TV."""
        application = self._create(app)
        if application is None:
            return False
        if self.launcher.install(application):
            _LOGGER.info("Installation page opened for %s", app.name)
            return True
        _LOGGER.warning("Installation failed for %s", app.name)
        return False

    def _release(self, app_id: str, application: Application):
        with self._lock:
            if self._applications.get(app_id) is not application:
                return
            del self._applications[app_id]
            self._timers.pop(app_id, None)
        self.launcher.disconnect(application)
        _LOGGER.debug("Released app channel %s", app_id)

    def disconnect_all_apps(self):
        """Release every open app channel and forget the service."""
        with self._lock:
            applications = list(self._applications.values())
            self._applications.clear()
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()

        for application in applications:
            self.launcher.disconnect(application)
        if applications:
            _LOGGER.info("Disconnected %d app channel(s)", len(applications))
        self.service = None

    @property
    def connected_apps(self) -> List[str]:
        return list(self._applications)
