"""Capability contract every network backend satisfies."""

from __future__ import annotations

from typing import Protocol

from wifitui.wifi_common import Observations, SecurityType, UpdateOptions


class Backend(Protocol):
    """Protocol for network-control backends.

    Every method may block; callers run them off the consumer thread.
    Failures are raised as :class:`wifitui.errors.WifiError` subclasses.
    A backend that structurally cannot provide a capability raises
    :class:`wifitui.errors.NotSupportedError` for that method only.
    """

    def list_observations(self, scan: bool) -> Observations:
        """Return visible access points, saved records and the active SSID.

        Triggers a rescan first when *scan* is true.  A failure to list
        saved records is reported in ``Observations.known_error`` rather
        than raised.
        """
        ...  # pragma: no cover

    def activate(self, ssid: str) -> None:
        """Activate the saved profile for *ssid*."""
        ...  # pragma: no cover

    def forget(self, ssid: str) -> None:
        """Delete every saved profile for *ssid*."""
        ...  # pragma: no cover

    def join(self, ssid: str, password: str, security: SecurityType, hidden: bool) -> None:
        """Connect to *ssid*, creating a saved profile.  Blocks until done."""
        ...  # pragma: no cover

    def get_secret(self, ssid: str) -> str:
        """Return the saved passphrase of the first profile for *ssid*."""
        ...  # pragma: no cover

    def update_connection(self, ssid: str, options: UpdateOptions) -> None:
        """Apply *options* to the first profile for *ssid*."""
        ...  # pragma: no cover

    def is_radio_enabled(self) -> bool:
        ...  # pragma: no cover

    def set_radio_enabled(self, enabled: bool) -> None:
        """Switch the radio and block until the change is observed."""
        ...  # pragma: no cover
