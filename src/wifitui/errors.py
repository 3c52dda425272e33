"""Typed errors raised by backends and carried in result messages."""

from __future__ import annotations


class WifiError(Exception):
    """Base class for all wifitui errors."""


class NotFoundError(WifiError):
    """The referenced SSID or saved profile does not exist."""


class NotSupportedError(WifiError):
    """The backend structurally cannot provide this capability."""


class NotAvailableError(WifiError):
    """The backend service or tool is unreachable."""


class OperationFailedError(WifiError):
    """A backend call was made and failed."""


class IncorrectPassphraseError(OperationFailedError):
    """Joining failed because the passphrase was rejected."""


class WirelessDisabledError(WifiError):
    """The wireless radio is switched off."""
