"""NetworkManager backend driven through the ``nmcli`` command-line tool.

All subprocess calls go through an injectable :class:`CommandRunner`, so
tests feed canned terse output instead of patching ``subprocess``.
Saved profiles are matched to SSIDs by reading each wireless profile's
``802-11-wireless.ssid``; when several profiles share an SSID, the first
one in ``nmcli connection show`` order is the one acted on.
"""

from __future__ import annotations

import logging
import re
import subprocess
import time
from collections.abc import Callable
from datetime import datetime, timezone

from wifitui.errors import (
    IncorrectPassphraseError,
    NotAvailableError,
    NotFoundError,
    OperationFailedError,
    WirelessDisabledError,
)
from wifitui.resolver import first_known_record
from wifitui.wifi_common import (
    AccessPoint,
    CommandRunner,
    KnownRecord,
    Observations,
    SecurityType,
    SubprocessRunner,
    UpdateOptions,
    _minimal_env,
    clamp_strength,
)

logger = logging.getLogger(__name__)

_DEFAULT_RUNNER = SubprocessRunner()

COMMAND_TIMEOUT = 15
CONNECT_WAIT = 30
RADIO_TIMEOUT = 10.0
RADIO_POLL_INTERVAL = 0.5

_WIRELESS_TYPES = ("802-11-wireless", "wifi")


# ---------------------------------------------------------------------------
# nmcli output parsing
# ---------------------------------------------------------------------------

def _split_nmcli_line(line: str) -> list[str]:
    """Split a nmcli terse-mode line on unescaped colons.

    Colons and backslashes inside field values are escaped as ``\\:`` and
    ``\\\\``.  A backslash always takes the next character literally, so a
    value ending in an escaped backslash still ends at the following colon.
    """
    fields: list[str] = []
    current: list[str] = []
    chars = iter(line)
    for ch in chars:
        if ch == "\\":
            current.append(next(chars, "\\"))
        elif ch == ":":
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
    fields.append("".join(current))
    return fields


def _map_nmcli_security(security: str) -> SecurityType:
    """Map the nmcli SECURITY column to a :class:`SecurityType`."""
    s = security.upper()
    if "WPA" in s or "SAE" in s or "802.1X" in s:
        return SecurityType.WPA
    if "WEP" in s:
        return SecurityType.WEP
    return SecurityType.OPEN


def _map_key_mgmt(key_mgmt: str) -> SecurityType:
    """Map a profile's ``802-11-wireless-security.key-mgmt`` value."""
    k = key_mgmt.strip().lower()
    if not k or k == "owe":
        return SecurityType.OPEN
    if k in ("none", "ieee8021x"):
        return SecurityType.WEP
    return SecurityType.WPA


def _parse_int(value: str) -> int:
    match = re.match(r"\s*(-?\d+)", value)
    return int(match.group(1)) if match else 0


def parse_wifi_list(output: str) -> tuple[list[AccessPoint], str | None]:
    """Parse ``IN-USE,BSSID,SSID,CHAN,FREQ,SIGNAL,SECURITY`` terse output.

    Returns:
        (access_points, active_ssid) where active_ssid is the SSID of the
        row marked in use, or None.
    """
    access_points: list[AccessPoint] = []
    active_ssid: str | None = None

    for line in output.strip().splitlines():
        if not line.strip():
            continue
        fields = _split_nmcli_line(line)
        if len(fields) < 7:
            continue

        in_use, bssid, ssid = fields[0].strip(), fields[1].lower(), fields[2]
        ap = AccessPoint(
            ssid=ssid,
            bssid=bssid or "unknown",
            strength=clamp_strength(_parse_int(fields[5])),
            frequency=_parse_int(fields[4]),
            security=_map_nmcli_security(fields[6]),
        )
        access_points.append(ap)
        if in_use == "*" and ssid and active_ssid is None:
            active_ssid = ssid

    return access_points, active_ssid


def parse_connection_list(output: str) -> list[tuple[str, str, bool, datetime | None]]:
    """Parse ``NAME,UUID,TYPE,AUTOCONNECT,TIMESTAMP`` terse output.

    Returns ``(name, uuid, autoconnect, last_connected)`` for wireless
    profiles only, in nmcli order.
    """
    profiles: list[tuple[str, str, bool, datetime | None]] = []
    for line in output.strip().splitlines():
        if not line.strip():
            continue
        fields = _split_nmcli_line(line)
        if len(fields) < 5 or fields[2] not in _WIRELESS_TYPES:
            continue
        timestamp = _parse_int(fields[4])
        last_connected = (
            datetime.fromtimestamp(timestamp, tz=timezone.utc) if timestamp > 0 else None
        )
        profiles.append((fields[0], fields[1], fields[3] == "yes", last_connected))
    return profiles


# ---------------------------------------------------------------------------
# Backend
# ---------------------------------------------------------------------------

class NmcliBackend:
    """:class:`wifitui.backends.base.Backend` over ``nmcli``.

    Args:
        interface: Optional wireless interface name.
        runner: Optional CommandRunner for subprocess calls (testing seam).
        sleep: Sleep function used while waiting for the radio to settle.
        monotonic: Clock used for the radio timeout.
    """

    def __init__(
        self,
        interface: str | None = None,
        *,
        runner: CommandRunner | None = None,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.interface = interface
        self._runner = runner or _DEFAULT_RUNNER
        self._sleep = sleep
        self._monotonic = monotonic

    # -- subprocess plumbing ------------------------------------------------

    def _run(
        self, args: list[str], *, timeout: float = COMMAND_TIMEOUT,
    ) -> subprocess.CompletedProcess:
        cmd = ["nmcli", *args]
        logger.debug("running %s", " ".join(cmd[:4]))
        try:
            return self._runner.run(
                cmd, capture_output=True, text=True, timeout=timeout, env=_minimal_env(),
            )
        except FileNotFoundError as exc:
            raise NotAvailableError("nmcli not found") from exc
        except subprocess.TimeoutExpired as exc:
            raise OperationFailedError(f"nmcli timed out after {timeout}s") from exc
        except OSError as exc:
            raise NotAvailableError(f"cannot run nmcli: {exc}") from exc

    def _check(self, args: list[str], *, timeout: float = COMMAND_TIMEOUT) -> str:
        """Run nmcli and return stdout, raising on a non-zero exit."""
        result = self._run(args, timeout=timeout)
        if result.returncode != 0:
            message = (result.stderr or result.stdout or "").strip()
            raise OperationFailedError(message or f"nmcli exited with {result.returncode}")
        return result.stdout or ""

    def _ifname(self) -> list[str]:
        return ["ifname", self.interface] if self.interface else []

    # -- saved profiles -----------------------------------------------------

    def _list_known(self) -> list[KnownRecord]:
        output = self._check(
            ["-t", "-f", "NAME,UUID,TYPE,AUTOCONNECT,TIMESTAMP", "connection", "show"],
        )
        records: list[KnownRecord] = []
        for name, uuid, autoconnect, last_connected in parse_connection_list(output):
            try:
                details = self._check([
                    "-g",
                    "802-11-wireless.ssid,802-11-wireless.hidden,802-11-wireless-security.key-mgmt",
                    "connection", "show", "uuid", uuid,
                ]).splitlines()
            except (OperationFailedError, NotAvailableError) as exc:
                # Profile may have been deleted since the listing.
                logger.warning("skipping saved profile %s: %s", uuid, exc)
                continue
            details += [""] * (3 - len(details))
            ssid = details[0].strip() or name
            records.append(KnownRecord(
                ssid=ssid,
                id=uuid,
                security=_map_key_mgmt(details[2]),
                auto_connect=autoconnect,
                last_connected=last_connected,
                is_hidden=details[1].strip() == "yes",
            ))
        return records

    def _profile_ids(self, ssid: str) -> list[str]:
        ids = [r.id for r in self._list_known() if r.ssid == ssid]
        if not ids:
            raise NotFoundError(f"no saved profile for {ssid}")
        return ids

    def _first_profile_id(self, ssid: str) -> str:
        record = first_known_record(self._list_known(), ssid)
        if record is None:
            raise NotFoundError(f"no saved profile for {ssid}")
        return record.id

    # -- Backend protocol ---------------------------------------------------

    def list_observations(self, scan: bool) -> Observations:
        if not self.is_radio_enabled():
            raise WirelessDisabledError("wireless radio is off")

        if scan:
            try:
                self._check(["device", "wifi", "rescan", *self._ifname()])
            except OperationFailedError as exc:
                # Rescan is rate limited and may need privileges; the cached
                # list is still valid.
                logger.debug("rescan failed: %s", exc)

        output = self._check([
            "-t", "-f", "IN-USE,BSSID,SSID,CHAN,FREQ,SIGNAL,SECURITY",
            "device", "wifi", "list", "--rescan", "no", *self._ifname(),
        ])
        visible, active_ssid = parse_wifi_list(output)

        known: list[KnownRecord] = []
        known_error: Exception | None = None
        try:
            known = self._list_known()
        except (OperationFailedError, NotAvailableError) as exc:
            known_error = exc

        return Observations(
            visible=visible,
            known=known,
            active_ssid=active_ssid,
            known_error=known_error,
        )

    def activate(self, ssid: str) -> None:
        uuid = self._first_profile_id(ssid)
        self._check(
            ["--wait", str(CONNECT_WAIT), "connection", "up", "uuid", uuid, *self._ifname()],
            timeout=CONNECT_WAIT + 5,
        )

    def forget(self, ssid: str) -> None:
        args = ["connection", "delete"]
        for uuid in self._profile_ids(ssid):
            args += ["uuid", uuid]
        self._check(args)

    def join(self, ssid: str, password: str, security: SecurityType, hidden: bool) -> None:
        args = ["--wait", str(CONNECT_WAIT), "device", "wifi", "connect", ssid]
        if password and security != SecurityType.OPEN:
            args += ["password", password]
        if hidden:
            args += ["hidden", "yes"]
        args += self._ifname()

        result = self._run(args, timeout=CONNECT_WAIT + 5)
        if result.returncode == 0:
            return
        message = (result.stderr or result.stdout or "").strip()
        lowered = message.lower()
        if "secrets were required" in lowered or "802-11-wireless-security.psk" in lowered:
            raise IncorrectPassphraseError(message)
        if "no network with ssid" in lowered:
            raise NotFoundError(message)
        raise OperationFailedError(message or f"nmcli exited with {result.returncode}")

    def get_secret(self, ssid: str) -> str:
        uuid = self._first_profile_id(ssid)
        output = self._check([
            "-s", "-g",
            "802-11-wireless-security.psk,802-11-wireless-security.wep-key0",
            "connection", "show", "uuid", uuid,
        ])
        for line in output.splitlines():
            if line.strip():
                return line.strip()
        return ""

    def update_connection(self, ssid: str, options: UpdateOptions) -> None:
        uuid = self._first_profile_id(ssid)
        args = ["connection", "modify", "uuid", uuid]
        if options.password is not None:
            args += ["802-11-wireless-security.psk", options.password]
        if options.auto_connect is not None:
            args += ["connection.autoconnect", "yes" if options.auto_connect else "no"]
        if len(args) == 4:
            return
        self._check(args)

    def is_radio_enabled(self) -> bool:
        return self._check(["radio", "wifi"]).strip() == "enabled"

    def set_radio_enabled(self, enabled: bool) -> None:
        self._check(["radio", "wifi", "on" if enabled else "off"])
        deadline = self._monotonic() + RADIO_TIMEOUT
        while self.is_radio_enabled() != enabled:
            if self._monotonic() >= deadline:
                raise OperationFailedError(
                    f"radio did not turn {'on' if enabled else 'off'} within {RADIO_TIMEOUT:.0f}s"
                )
            self._sleep(RADIO_POLL_INTERVAL)
