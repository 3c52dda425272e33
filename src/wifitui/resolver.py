"""Merge raw backend observations into one Connection per SSID.

Visible access points are grouped by SSID and attached best-first; saved
profiles contribute metadata; the backend's active SSID is applied last in
a single reset-then-set pass.  Where a backend reports several saved
profiles with the same SSID, the first one in backend order wins, both
here and in every backend's ``get_secret``/``update_connection``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from wifitui.sorting import sort_connections
from wifitui.wifi_common import (
    AccessPoint,
    Connection,
    KnownRecord,
    Observations,
    SecurityType,
)

if TYPE_CHECKING:
    from wifitui.backends.base import Backend

logger = logging.getLogger(__name__)


def _ap_rank(ap: AccessPoint) -> tuple[int, int]:
    return (ap.strength, ap.frequency)


def first_known_record(records: list[KnownRecord], ssid: str) -> KnownRecord | None:
    """Return the first record for *ssid* in backend-reported order."""
    for record in records:
        if record.ssid == ssid:
            return record
    return None


def group_access_points(visible: list[AccessPoint]) -> dict[str, list[AccessPoint]]:
    """Group observations by SSID, strongest first within each group.

    Groups keep first-seen order.  Observations without an SSID cannot be
    attributed to a network and are dropped.
    """
    groups: dict[str, list[AccessPoint]] = {}
    for ap in visible:
        if not ap.ssid:
            logger.debug("dropping access point without ssid: %s", ap.bssid)
            continue
        groups.setdefault(ap.ssid, []).append(ap)
    for aps in groups.values():
        aps.sort(key=_ap_rank, reverse=True)
    return groups


def resolve_connections(observations: Observations) -> list[Connection]:
    """Resolve *observations* into connections, unordered.

    Returns visible networks in first-seen order followed by saved-only
    networks in record order.  Pass the result through
    :func:`wifitui.sorting.sort_connections` for display.
    """
    known = observations.known
    if observations.known_error is not None:
        logger.warning(
            "saved networks unavailable, showing visible networks only: %s",
            observations.known_error,
        )
        known = []

    by_ssid: dict[str, KnownRecord] = {}
    for record in known:
        if not record.ssid:
            continue
        # setdefault keeps the first record for duplicate SSIDs.
        by_ssid.setdefault(record.ssid, record)

    connections: list[Connection] = []
    for ssid, aps in group_access_points(observations.visible).items():
        best = aps[0]
        conn = Connection(
            ssid=ssid,
            is_visible=True,
            security=best.security,
            access_points=aps,
        )
        record = by_ssid.get(ssid)
        if record is not None:
            conn.is_known = True
            conn.auto_connect = record.auto_connect
            conn.last_connected = record.last_connected
            conn.is_hidden = record.is_hidden
            if record.security != SecurityType.UNKNOWN:
                conn.security = record.security
        connections.append(conn)

    seen = {conn.ssid for conn in connections}
    for ssid, record in by_ssid.items():
        if ssid in seen:
            continue
        connections.append(Connection(
            ssid=ssid,
            is_known=True,
            is_visible=False,
            is_hidden=record.is_hidden,
            security=record.security,
            last_connected=record.last_connected,
            auto_connect=record.auto_connect,
        ))

    for conn in connections:
        conn.is_active = False
    if observations.active_ssid:
        for conn in connections:
            if conn.ssid == observations.active_ssid:
                conn.is_active = True
                break

    logger.debug(
        "resolved %d connection(s) from %d access point(s) and %d saved record(s)",
        len(connections), len(observations.visible), len(known),
    )
    return connections


def build_network_list(backend: Backend, scan: bool = False) -> list[Connection]:
    """Fetch observations from *backend*, resolve and order them.

    Errors from ``list_observations`` propagate; a failed saved-profile
    listing only degrades the result.
    """
    observations = backend.list_observations(scan)
    return sort_connections(resolve_connections(observations))
