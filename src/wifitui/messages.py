"""Result messages delivered to the consumer's inbox.

Each message carries the context it applies to, so the consumer can apply
it correctly whatever order results arrive in.
"""

from __future__ import annotations

from dataclasses import dataclass

from wifitui.wifi_common import Connection


@dataclass(frozen=True)
class ConnectionsLoaded:
    """A resolved, ordered snapshot.  ``scanned`` is true for scan results."""

    connections: list[Connection]
    scanned: bool = False


@dataclass(frozen=True)
class ScanTick:
    """Posted by the scan timer; stale generations are ignored."""

    generation: int


@dataclass(frozen=True)
class OperationSucceeded:
    name: str
    ssid: str | None = None


@dataclass(frozen=True)
class SecretLoaded:
    ssid: str
    secret: str


@dataclass(frozen=True)
class RadioStatus:
    enabled: bool


@dataclass(frozen=True)
class OperationFailed:
    name: str
    ssid: str | None
    error: Exception


Message = ConnectionsLoaded | ScanTick | OperationSucceeded | SecretLoaded | RadioStatus | OperationFailed
