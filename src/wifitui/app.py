"""The single-threaded consumer: UI state plus the message loop.

:class:`WifiApp` owns everything a front end displays.  User actions
dispatch commands; results come back as messages through one inbox and
are applied by :meth:`WifiApp.handle`, always on the consumer thread.
Results are checked against current state before being applied, since
in-flight commands are never aborted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from wifitui.backends.base import Backend
from wifitui.commands import (
    Dispatcher,
    activate_command,
    forget_command,
    join_command,
    load_command,
    radio_status_command,
    scan_command,
    secret_command,
    set_auto_connect_command,
    set_radio_command,
    toggle_radio_command,
    update_command,
)
from wifitui.config import Settings
from wifitui.errors import WirelessDisabledError
from wifitui.messages import (
    ConnectionsLoaded,
    Message,
    OperationFailed,
    OperationSucceeded,
    RadioStatus,
    ScanTick,
    SecretLoaded,
)
from wifitui.scheduler import ScanScheduler, TimerFactory
from wifitui.wifi_common import Connection, SecurityType, UpdateOptions

logger = logging.getLogger(__name__)

VIEW_LIST = "list"
VIEW_DISABLED = "disabled"
VIEW_ERROR = "error"


class WifiApp:
    """Application model driven by backend result messages.

    Args:
        backend: The network backend.
        settings: Configuration; defaults are used when omitted.
        dispatcher: Optional dispatcher (testing seam).
        timer_factory: Optional scan timer factory (testing seam).
        on_change: Called after every applied message, e.g. to redraw.
    """

    def __init__(
        self,
        backend: Backend,
        settings: Settings | None = None,
        *,
        dispatcher: Dispatcher | None = None,
        timer_factory: TimerFactory | None = None,
        on_change: Callable[[WifiApp], None] | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.backend = backend
        self.dispatcher = dispatcher or Dispatcher(workers=self.settings.workers)
        self.on_change = on_change

        scheduler_kwargs = {}
        if timer_factory is not None:
            scheduler_kwargs["timer_factory"] = timer_factory
        self.scheduler = ScanScheduler(
            on_scan=self._dispatch_scan,
            post=self.dispatcher.post,
            fast_interval=self.settings.scan_fast_interval,
            slow_interval=self.settings.scan_slow_interval,
            slow_after=self.settings.scan_slow_after,
            **scheduler_kwargs,
        )
        if not self.settings.active_scan:
            self.scheduler.set_enabled(False)

        self.connections: list[Connection] = []
        self.view = VIEW_LIST
        self.loading = False
        self.status_message = ""
        self.error: Exception | None = None
        self.selected_ssid: str | None = None
        self.secret: str | None = None
        self.radio_enabled: bool | None = None

    # -- lifecycle ----------------------------------------------------------

    def start(self) -> None:
        """Read the radio state, load without rescanning, then start live scanning."""
        self._busy("Loading connections...")
        self.refresh_radio()
        self.dispatcher.dispatch(load_command(self.backend))
        self.scheduler.enter_view()

    def stop(self) -> None:
        self.scheduler.leave_view()
        self.dispatcher.shutdown()

    # -- queries ------------------------------------------------------------

    def find(self, ssid: str) -> Connection | None:
        """Return the current connection for *ssid*, if listed."""
        for conn in self.connections:
            if conn.ssid == ssid:
                return conn
        return None

    # -- user actions -------------------------------------------------------

    def scan(self) -> None:
        self.scheduler.request_scan()

    def toggle_scanning(self) -> bool:
        enabled = self.scheduler.toggle()
        self.status_message = f"Active scanning {'enabled' if enabled else 'disabled'}."
        return enabled

    def connect(self, ssid: str, auto_connect: bool | None = None) -> None:
        """Activate a saved network, updating auto-connect first if changed."""
        self._busy(f"Connecting to '{ssid}'...")
        batch = []
        current = self.find(ssid)
        if auto_connect is not None and (current is None or current.auto_connect != auto_connect):
            batch.append(set_auto_connect_command(self.backend, ssid, auto_connect))
        batch.append(activate_command(self.backend, ssid))
        self.dispatcher.dispatch_batch(batch)

    def join(
        self,
        ssid: str,
        password: str = "",
        security: SecurityType = SecurityType.WPA,
        hidden: bool = False,
    ) -> None:
        self._busy(f"Joining '{ssid}'...")
        self.dispatcher.dispatch(join_command(self.backend, ssid, password, security, hidden))

    def forget(self, ssid: str) -> None:
        self._busy(f"Forgetting '{ssid}'...")
        self.dispatcher.dispatch(forget_command(self.backend, ssid))

    def select(self, ssid: str) -> None:
        """Select a network; loads its saved secret when it is known."""
        self.selected_ssid = ssid
        self.secret = None
        current = self.find(ssid)
        if current is not None and current.is_known:
            self._busy(f"Loading details for {ssid}...")
            self.dispatcher.dispatch(secret_command(self.backend, ssid))

    def deselect(self) -> None:
        self.selected_ssid = None
        self.secret = None

    def update(
        self, ssid: str, password: str | None = None, auto_connect: bool | None = None,
    ) -> None:
        options = UpdateOptions(password=password, auto_connect=auto_connect)
        if options.password is None and options.auto_connect is None:
            return
        self._busy(f"Saving settings for {ssid}...")
        self.dispatcher.dispatch(update_command(self.backend, ssid, options))

    def toggle_radio(self) -> None:
        """Switch the radio to the opposite of its last known state."""
        self._busy("Toggling Wi-Fi radio...")
        if self.radio_enabled is None:
            self.dispatcher.dispatch(toggle_radio_command(self.backend))
            return
        self.dispatcher.dispatch(set_radio_command(self.backend, not self.radio_enabled))

    def refresh_radio(self) -> None:
        """Re-read the radio state from the backend."""
        self.dispatcher.dispatch(radio_status_command(self.backend))

    def dismiss_error(self) -> None:
        self.error = None
        if self.view == VIEW_ERROR:
            self.view = VIEW_LIST

    # -- message loop -------------------------------------------------------

    def pump(self, timeout: float | None = None) -> bool:
        """Apply one inbox message.  Returns False if none arrived."""
        message = self.dispatcher.get(timeout=timeout)
        if message is None:
            return False
        self.handle(message)
        return True

    def run_pending(self) -> int:
        """Apply every message already queued; returns how many."""
        count = 0
        while self.pump(timeout=0):
            count += 1
        return count

    def handle(self, message: Message) -> None:
        """Apply a single result message to the application state."""
        if isinstance(message, ScanTick):
            self.scheduler.handle_tick(message)
        elif isinstance(message, ConnectionsLoaded):
            self._on_connections(message)
        elif isinstance(message, OperationSucceeded):
            self._on_success(message)
        elif isinstance(message, SecretLoaded):
            self._on_secret(message)
        elif isinstance(message, RadioStatus):
            self._on_radio(message)
        elif isinstance(message, OperationFailed):
            self._on_failure(message)
        else:
            logger.warning("ignoring unknown message %r", message)
            return
        if self.on_change is not None:
            self.on_change(self)

    # -- handlers -----------------------------------------------------------

    def _busy(self, status: str) -> None:
        self.loading = True
        self.status_message = status

    def _idle(self, status: str = "") -> None:
        self.loading = False
        self.status_message = status

    def _dispatch_scan(self) -> None:
        self.dispatcher.dispatch(scan_command(self.backend))

    def _on_connections(self, message: ConnectionsLoaded) -> None:
        if self.view == VIEW_DISABLED:
            logger.debug("discarding network list while radio is off")
            return
        self.connections = message.connections
        self.radio_enabled = True
        if message.scanned:
            self.scheduler.record_result(bool(message.connections))
        self._idle()

    def _on_success(self, message: OperationSucceeded) -> None:
        self._busy("Successfully updated. Refreshing list...")
        if message.name == "forget" and message.ssid == self.selected_ssid:
            self.deselect()
        self.dispatcher.dispatch(load_command(self.backend))

    def _on_secret(self, message: SecretLoaded) -> None:
        if message.ssid != self.selected_ssid:
            logger.debug("discarding secret for %s, no longer selected", message.ssid)
            return
        self.secret = message.secret
        self._idle()

    def _on_radio(self, message: RadioStatus) -> None:
        previous = self.radio_enabled
        self.radio_enabled = message.enabled
        if message.enabled:
            if self.view == VIEW_DISABLED or previous is False:
                self.view = VIEW_LIST
                self._busy("Scanning for networks...")
                self.scheduler.enter_view()
            elif previous is not None:
                # The first report leaves the start-up load to clear the status.
                self._idle()
            return
        self.connections = []
        self.view = VIEW_DISABLED
        self.scheduler.leave_view()
        self._idle()

    def _on_failure(self, message: OperationFailed) -> None:
        if isinstance(message.error, WirelessDisabledError):
            if self.view != VIEW_DISABLED:
                self._on_radio(RadioStatus(False))
            return
        if message.name == "secret" and message.ssid != self.selected_ssid:
            return
        logger.error("%s failed: %s", message.name, message.error)
        self.error = message.error
        self.view = VIEW_ERROR
        self._idle()
