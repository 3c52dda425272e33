"""Shared data structures and helpers for wifitui."""

from __future__ import annotations

import enum
import os
import subprocess
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

# -- Colors (RGB tuples; mapped to Rich color names for the TUI) --
WHITE = (255, 255, 255)
GREEN = (0, 255, 0)
YELLOW = (255, 255, 0)
RED = (255, 0, 0)
CYAN = (0, 255, 255)
GRAY = (128, 128, 128)

# Canonical mapping from RGB tuple to Rich color name.
COLOR_TO_RICH: dict[tuple, str] = {
    WHITE: "white",
    GREEN: "green",
    YELLOW: "yellow",
    RED: "red",
    CYAN: "cyan",
    GRAY: "grey50",
}


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

class SecurityType(enum.Enum):
    """Security class of a network, coarsest first."""

    UNKNOWN = "unknown"
    OPEN = "open"
    WEP = "wep"
    WPA = "wpa"

    @classmethod
    def parse(cls, text: str) -> SecurityType:
        """Map ``open``/``wep``/``wpa`` (any case) to a member.

        Raises:
            ValueError: for any other string.
        """
        value = text.strip().lower()
        if value in ("open", "wep", "wpa"):
            return cls(value)
        raise ValueError(f"invalid security type: {text!r} (expected open, wep, or wpa)")


@dataclass
class AccessPoint:
    """One physical radio observation of a network."""

    ssid: str
    bssid: str = "unknown"
    strength: int = 0        # 0-100, 0 means no live signal
    frequency: int = 0       # MHz
    security: SecurityType = SecurityType.UNKNOWN


@dataclass
class KnownRecord:
    """A saved network profile as reported by a backend.

    ``id`` is the backend's own profile identifier (a NetworkManager UUID,
    for example) and may be empty where the backend has none.
    """

    ssid: str
    id: str = ""
    security: SecurityType = SecurityType.UNKNOWN
    auto_connect: bool = True
    last_connected: datetime | None = None
    is_hidden: bool = False


@dataclass
class Observations:
    """A raw snapshot from a backend, before resolution.

    ``known`` keeps the backend-reported order; duplicate SSIDs are allowed.
    ``known_error`` is set when the saved-profile listing failed, in which
    case ``known`` is empty and resolution continues with visible data only.
    """

    visible: list[AccessPoint] = field(default_factory=list)
    known: list[KnownRecord] = field(default_factory=list)
    active_ssid: str | None = None
    known_error: Exception | None = None


@dataclass
class Connection:
    """A resolved network, one per SSID.

    Rebuilt from scratch on every resolution cycle.  ``access_points`` is
    sorted best-first by the resolver, so :attr:`strength` is a lookup.
    """

    ssid: str
    is_active: bool = False
    is_known: bool = False
    is_visible: bool = False
    is_hidden: bool = False
    security: SecurityType = SecurityType.UNKNOWN
    access_points: list[AccessPoint] = field(default_factory=list)
    last_connected: datetime | None = None
    auto_connect: bool = False

    @property
    def strength(self) -> int:
        """Strength of the best access point, or 0 when none is visible."""
        if not self.access_points:
            return 0
        return self.access_points[0].strength

    @property
    def is_secure(self) -> bool:
        return self.security in (SecurityType.WEP, SecurityType.WPA)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping."""
        return {
            "ssid": self.ssid,
            "active": self.is_active,
            "known": self.is_known,
            "secure": self.is_secure,
            "security": self.security.value,
            "visible": self.is_visible,
            "hidden": self.is_hidden,
            "strength": self.strength,
            "auto_connect": self.auto_connect,
            "last_connected": (
                self.last_connected.isoformat() if self.last_connected else None
            ),
            "access_points": [
                {
                    "bssid": ap.bssid,
                    "strength": ap.strength,
                    "frequency": ap.frequency,
                }
                for ap in self.access_points
            ],
        }


@dataclass
class UpdateOptions:
    """Changes to apply to a saved profile.  ``None`` leaves a field as is."""

    password: str | None = None
    auto_connect: bool | None = None


# ---------------------------------------------------------------------------
# Command runner protocol (subprocess injection seam)
# ---------------------------------------------------------------------------

class CommandRunner(Protocol):
    """Protocol for running external commands.

    Provides an injection seam so callers can substitute a fake runner in
    tests instead of patching ``subprocess`` globally.
    """

    def run(
        self,
        cmd: list[str],
        *,
        capture_output: bool = True,
        text: bool = True,
        timeout: float | None = None,
        env: dict[str, str] | None = None,
    ) -> subprocess.CompletedProcess[Any]:
        """Run *cmd* and return a CompletedProcess."""
        ...  # pragma: no cover


class SubprocessRunner:
    """Default CommandRunner that delegates to the real ``subprocess`` module."""

    def run(
        self,
        cmd: list[str],
        *,
        capture_output: bool = True,
        text: bool = True,
        timeout: float | None = None,
        env: dict[str, str] | None = None,
    ) -> subprocess.CompletedProcess[Any]:
        """Run *cmd* via ``subprocess.run``."""
        return subprocess.run(
            cmd,
            capture_output=capture_output,
            text=text,
            timeout=timeout,
            env=env,
        )


def _minimal_env() -> dict[str, str]:
    """Build a minimal environment for subprocess calls.

    Only passes PATH, LC_ALL, and HOME so the full user environment does
    not leak into child processes.
    """
    return {
        "PATH": os.environ.get("PATH", "/usr/bin:/bin"),
        "LC_ALL": "C",
        "HOME": os.environ.get("HOME", ""),
    }


# ---------------------------------------------------------------------------
# Signal / security helpers
# ---------------------------------------------------------------------------

def clamp_strength(value: int) -> int:
    """Clamp a signal quality value into 0-100."""
    return max(0, min(100, value))


def strength_to_bars(strength: int) -> int:
    """Convert signal quality (0-100) to a bar count (0-4)."""
    if strength >= 75:
        return 4
    if strength >= 50:
        return 3
    if strength >= 25:
        return 2
    if strength > 0:
        return 1
    return 0


def strength_color(strength: int) -> tuple:
    """Return an RGB color tuple based on signal quality."""
    if strength >= 70:
        return GREEN
    if strength >= 40:
        return YELLOW
    return RED


def security_color(security: SecurityType) -> tuple:
    """Return an RGB color tuple based on security type."""
    if security == SecurityType.OPEN:
        return RED
    if security == SecurityType.WEP:
        return YELLOW
    if security == SecurityType.WPA:
        return GREEN
    return GRAY


def format_since(when: datetime, now: datetime | None = None) -> str:
    """Describe how long ago *when* was, e.g. ``"3 hours ago"``."""
    now = now or datetime.now(tz=when.tzinfo)
    seconds = int((now - when).total_seconds())
    if seconds < 60:
        return "just now"
    for unit, size in (("year", 365 * 86400), ("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit}{'s' if count != 1 else ''} ago"
    return "just now"  # pragma: no cover
