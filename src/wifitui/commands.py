"""Asynchronous backend commands and the dispatcher that runs them.

A :class:`Command` wraps exactly one backend call.  The :class:`Dispatcher`
runs commands on a worker pool and delivers each command's single result
message to one inbox queue, which only the consumer reads.  Commands never
raise: every failure becomes an :class:`~wifitui.messages.OperationFailed`.
"""

from __future__ import annotations

import logging
import queue
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from wifitui.backends.base import Backend
from wifitui.errors import OperationFailedError, WifiError
from wifitui.messages import (
    ConnectionsLoaded,
    Message,
    OperationFailed,
    OperationSucceeded,
    RadioStatus,
    SecretLoaded,
)
from wifitui.resolver import build_network_list
from wifitui.wifi_common import SecurityType, UpdateOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Command:
    """A named unit of work producing exactly one message."""

    name: str
    run: Callable[[], Message]
    ssid: str | None = None

    def execute(self) -> Message:
        """Run the command, converting any exception into a failure message."""
        try:
            return self.run()
        except WifiError as exc:
            logger.debug("%s failed: %s", self.name, exc)
            return OperationFailed(self.name, self.ssid, exc)
        except Exception as exc:
            logger.exception("unexpected error in %s", self.name)
            error = OperationFailedError(f"{self.name}: {exc}")
            error.__cause__ = exc
            return OperationFailed(self.name, self.ssid, error)


# ---------------------------------------------------------------------------
# Command factories
# ---------------------------------------------------------------------------

def load_command(backend: Backend, scan: bool = False) -> Command:
    """Resolve the network list, optionally after a rescan."""
    name = "scan" if scan else "load"
    return Command(name, lambda: ConnectionsLoaded(build_network_list(backend, scan), scanned=scan))


def scan_command(backend: Backend) -> Command:
    return load_command(backend, scan=True)


def activate_command(backend: Backend, ssid: str) -> Command:
    def run() -> Message:
        backend.activate(ssid)
        return OperationSucceeded("activate", ssid)
    return Command("activate", run, ssid)


def forget_command(backend: Backend, ssid: str) -> Command:
    def run() -> Message:
        backend.forget(ssid)
        return OperationSucceeded("forget", ssid)
    return Command("forget", run, ssid)


def join_command(
    backend: Backend, ssid: str, password: str, security: SecurityType, hidden: bool,
) -> Command:
    def run() -> Message:
        backend.join(ssid, password, security, hidden)
        return OperationSucceeded("join", ssid)
    return Command("join", run, ssid)


def secret_command(backend: Backend, ssid: str) -> Command:
    return Command("secret", lambda: SecretLoaded(ssid, backend.get_secret(ssid)), ssid)


def update_command(backend: Backend, ssid: str, options: UpdateOptions) -> Command:
    def run() -> Message:
        backend.update_connection(ssid, options)
        return OperationSucceeded("update", ssid)
    return Command("update", run, ssid)


def set_auto_connect_command(backend: Backend, ssid: str, auto_connect: bool) -> Command:
    def run() -> Message:
        backend.update_connection(ssid, UpdateOptions(auto_connect=auto_connect))
        return OperationSucceeded("autoconnect", ssid)
    return Command("autoconnect", run, ssid)


def radio_status_command(backend: Backend) -> Command:
    return Command("radio", lambda: RadioStatus(backend.is_radio_enabled()))


def set_radio_command(backend: Backend, enabled: bool) -> Command:
    def run() -> Message:
        backend.set_radio_enabled(enabled)
        return RadioStatus(enabled)
    return Command("radio", run)


def toggle_radio_command(backend: Backend) -> Command:
    """Read the radio state and switch it the other way."""
    def run() -> Message:
        enabled = not backend.is_radio_enabled()
        backend.set_radio_enabled(enabled)
        return RadioStatus(enabled)
    return Command("radio", run)


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------

class Dispatcher:
    """Runs commands off the consumer thread and queues their results.

    Args:
        workers: Size of the worker pool.
        inbox: Optional queue to deliver into (testing seam).
    """

    def __init__(self, workers: int = 4, inbox: queue.Queue | None = None) -> None:
        self.inbox: queue.Queue = inbox if inbox is not None else queue.Queue()
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="wifitui")
        self._closed = False

    def post(self, message: Message) -> None:
        """Deliver *message* directly; safe to call from any thread."""
        self.inbox.put(message)

    def dispatch(self, command: Command) -> None:
        """Run *command* on the pool; its message lands in the inbox."""
        if self._closed:
            logger.debug("dispatcher closed, dropping %s", command.name)
            return
        logger.debug("dispatching %s", command.name)
        self._executor.submit(self._run, command)

    def dispatch_batch(self, commands: list[Command]) -> None:
        """Run *commands* in order on one worker.

        Each command posts its own message.  The batch stops after the
        first failure, so later steps never act on a half-applied change.
        """
        if self._closed or not commands:
            return
        logger.debug("dispatching batch %s", [c.name for c in commands])
        self._executor.submit(self._run_batch, list(commands))

    def _run(self, command: Command) -> None:
        self.post(command.execute())

    def _run_batch(self, commands: list[Command]) -> None:
        for command in commands:
            message = command.execute()
            self.post(message)
            if isinstance(message, OperationFailed):
                break

    def get(self, timeout: float | None = None) -> Message | None:
        """Return the next message, or None if none arrives in *timeout*."""
        try:
            return self.inbox.get(timeout=timeout)
        except queue.Empty:
            return None

    def shutdown(self, wait: bool = False) -> None:
        """Stop accepting work.  In-flight commands finish in the background."""
        self._closed = True
        self._executor.shutdown(wait=wait, cancel_futures=True)
