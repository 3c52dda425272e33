"""In-memory backend for development, demos and tests.

Holds a fixed set of visible access points and saved profiles, supports
error injection per operation, and sleeps ``action_sleep`` seconds before
every call to behave like a real backend in the UI.  Use
``action_sleep=0`` in tests.
"""

from __future__ import annotations

import itertools
import logging
import random
import threading
import time
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone

from wifitui.errors import NotFoundError, WirelessDisabledError
from wifitui.resolver import first_known_record
from wifitui.wifi_common import (
    AccessPoint,
    KnownRecord,
    Observations,
    SecurityType,
    UpdateOptions,
    clamp_strength,
)

logger = logging.getLogger(__name__)

DEFAULT_ACTION_SLEEP = 0.5


@dataclass
class SavedProfile:
    """A saved record plus the secret the mock hands out for it."""

    record: KnownRecord
    secret: str = ""


def _ago(hours: int) -> datetime:
    return datetime.now(tz=timezone.utc) - timedelta(hours=hours)


def sample_networks() -> tuple[list[AccessPoint], list[SavedProfile]]:
    """Return a playful set of visible access points and saved profiles.

    Includes a multi-AP network and two saved profiles sharing an SSID.
    """
    wpa, wep, open_ = SecurityType.WPA, SecurityType.WEP, SecurityType.OPEN
    visible = [
        AccessPoint("NeverGonnaGiveYouIP", "02:00:00:00:00:01", 41, 2437, wep),
        AccessPoint("Unencrypted_Honeypot", "02:00:00:00:00:02", 63, 2412, open_),
        AccessPoint("Dunder MiffLAN", "02:00:00:00:00:03", 55, 5180, wpa),
        AccessPoint("Police Surveillance 2", "02:00:00:00:00:04", 48, 2462, wpa),
        AccessPoint("I Believe Wi Can Fi", "02:00:00:00:00:05", 37, 2412, wep),
        AccessPoint("Hot singles in your area", "02:00:00:00:00:06", 72, 5745, wpa),
        AccessPoint("Password is password", "02:00:00:00:00:07", 87, 5200, wpa),
        AccessPoint("TacoBoutAGoodSignal", "02:00:00:00:00:08", 99, 2437, wpa),
        AccessPoint("Multi-AP Network", "00:11:22:33:44:55", 80, 2412, wpa),
        AccessPoint("Multi-AP Network", "aa:bb:cc:dd:ee:ff", 60, 5180, wpa),
        AccessPoint("Multi-AP Network", "11:22:33:44:55:66", 40, 5240, wpa),
    ]
    saved = [
        SavedProfile(
            KnownRecord("HideYoKidsHideYoWiFi", "mock-1", wpa, True, _ago(2)),
            "hidden",
        ),
        SavedProfile(KnownRecord("GET off my LAN", "mock-2", wpa, False, _ago(761))),
        SavedProfile(
            KnownRecord("Password is password", "mock-3", wpa, True, _ago(12456)),
            "password",
        ),
        SavedProfile(KnownRecord("FreeHugsAndWiFi", "mock-4", wpa, True, _ago(400))),
        # Second profile with an SSID that is already saved.
        SavedProfile(
            KnownRecord("HideYoKidsHideYoWiFi", "mock-5", wpa, True),
            "different_secret",
        ),
    ]
    return visible, saved


class MockBackend:
    """In-memory :class:`wifitui.backends.base.Backend` implementation.

    Set any ``*_error`` attribute to an exception instance to make the
    matching operation raise it.  ``list_known_error`` is reported through
    ``Observations.known_error`` instead of being raised.
    """

    def __init__(
        self,
        visible: list[AccessPoint] | None = None,
        saved: list[SavedProfile] | None = None,
        *,
        active_ssid: str | None = None,
        radio_enabled: bool = True,
        action_sleep: float = DEFAULT_ACTION_SLEEP,
        rng: random.Random | None = None,
    ) -> None:
        self.visible: list[AccessPoint] = list(visible or [])
        self.saved: list[SavedProfile] = list(saved or [])
        self.active_ssid = active_ssid
        self.radio_enabled = radio_enabled
        self.action_sleep = action_sleep
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        # Never reused, even after a forget.
        self._ids = itertools.count(len(self.saved) + 1)

        self.list_error: Exception | None = None
        self.list_known_error: Exception | None = None
        self.activate_error: Exception | None = None
        self.forget_error: Exception | None = None
        self.join_error: Exception | None = None
        self.get_secret_error: Exception | None = None
        self.update_error: Exception | None = None
        self.radio_error: Exception | None = None
        self.set_radio_error: Exception | None = None

    @classmethod
    def with_sample_networks(cls, **kwargs) -> MockBackend:
        visible, saved = sample_networks()
        return cls(visible, saved, **kwargs)

    def _pause(self) -> None:
        if self.action_sleep:
            time.sleep(self.action_sleep)

    def _first_profile(self, ssid: str) -> SavedProfile | None:
        record = first_known_record([p.record for p in self.saved], ssid)
        for profile in self.saved:
            if profile.record is record:
                return profile
        return None

    def list_observations(self, scan: bool) -> Observations:
        self._pause()
        with self._lock:
            if self.list_error is not None:
                raise self.list_error
            if not self.radio_enabled:
                raise WirelessDisabledError("wireless radio is off")
            if scan:
                self.visible = [
                    replace(ap, strength=clamp_strength(self._rng.randint(30, 99)))
                    for ap in self.visible
                ]
            if self.list_known_error is not None:
                known: list[KnownRecord] = []
            else:
                known = [replace(p.record) for p in self.saved]
            return Observations(
                visible=[replace(ap) for ap in self.visible],
                known=known,
                active_ssid=self.active_ssid,
                known_error=self.list_known_error,
            )

    def activate(self, ssid: str) -> None:
        self._pause()
        with self._lock:
            if self.activate_error is not None:
                raise self.activate_error
            profile = self._first_profile(ssid)
            if profile is None:
                raise NotFoundError(f"cannot activate unknown network {ssid}")
            self.active_ssid = ssid
            profile.record.last_connected = datetime.now(tz=timezone.utc)
            logger.debug("activated %s (%s)", ssid, profile.record.id)

    def forget(self, ssid: str) -> None:
        self._pause()
        with self._lock:
            if self.forget_error is not None:
                raise self.forget_error
            remaining = [p for p in self.saved if p.record.ssid != ssid]
            if len(remaining) == len(self.saved):
                raise NotFoundError(f"network not found: {ssid}")
            self.saved = remaining
            if self.active_ssid == ssid:
                self.active_ssid = None

    def join(self, ssid: str, password: str, security: SecurityType, hidden: bool) -> None:
        self._pause()
        with self._lock:
            if self.join_error is not None:
                raise self.join_error
            for ap in self.visible:
                if ap.ssid == ssid and ap.security != SecurityType.UNKNOWN:
                    security = ap.security
                    break
            profile = SavedProfile(
                KnownRecord(
                    ssid=ssid,
                    id=f"mock-{next(self._ids)}",
                    security=security,
                    auto_connect=True,
                    last_connected=datetime.now(tz=timezone.utc),
                    is_hidden=hidden,
                ),
                password,
            )
            for i, existing in enumerate(self.saved):
                if existing.record.ssid == ssid:
                    self.saved[i] = profile
                    break
            else:
                self.saved.append(profile)
            self.active_ssid = ssid

    def get_secret(self, ssid: str) -> str:
        self._pause()
        with self._lock:
            if self.get_secret_error is not None:
                raise self.get_secret_error
            profile = self._first_profile(ssid)
            if profile is None:
                raise NotFoundError(f"no secrets for {ssid}")
            return profile.secret

    def update_connection(self, ssid: str, options: UpdateOptions) -> None:
        self._pause()
        with self._lock:
            if self.update_error is not None:
                raise self.update_error
            profile = self._first_profile(ssid)
            if profile is None:
                raise NotFoundError(f"cannot update connection for unknown network {ssid}")
            if options.password is not None:
                profile.secret = options.password
            if options.auto_connect is not None:
                profile.record.auto_connect = options.auto_connect

    def is_radio_enabled(self) -> bool:
        self._pause()
        with self._lock:
            if self.radio_error is not None:
                raise self.radio_error
            return self.radio_enabled

    def set_radio_enabled(self, enabled: bool) -> None:
        self._pause()
        with self._lock:
            if self.set_radio_error is not None:
                raise self.set_radio_error
            self.radio_enabled = enabled
            if not enabled:
                self.active_ssid = None
