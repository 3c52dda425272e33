"""Network backends (nmcli, in-memory mock) and backend selection."""

from __future__ import annotations

import logging
import shutil

from wifitui.backends.base import Backend  # noqa: F401
from wifitui.backends.mock import MockBackend  # noqa: F401
from wifitui.backends.nmcli import NmcliBackend  # noqa: F401
from wifitui.errors import NotAvailableError

logger = logging.getLogger(__name__)

BACKEND_NAMES = ("auto", "nmcli", "mock")


def get_backend(name: str = "auto", interface: str | None = None) -> Backend:
    """Build the backend called *name*.

    ``auto`` picks nmcli when it is on PATH.

    Raises:
        NotAvailableError: if no usable backend is found.
        ValueError: for an unknown backend name.
    """
    if name == "mock":
        logger.debug("using mock backend")
        return MockBackend.with_sample_networks()
    if name == "nmcli":
        return NmcliBackend(interface=interface)
    if name == "auto":
        if shutil.which("nmcli"):
            logger.debug("nmcli found, using NetworkManager backend")
            return NmcliBackend(interface=interface)
        raise NotAvailableError("no supported network backend found (is NetworkManager installed?)")
    raise ValueError(f"unknown backend: {name!r} (expected one of {', '.join(BACKEND_NAMES)})")
