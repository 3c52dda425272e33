"""Canonical display order for resolved connections."""

from __future__ import annotations

from datetime import datetime

from wifitui.wifi_common import Connection


def _last_connected_key(when: datetime | None) -> tuple[bool, float]:
    # Most recent first; never-connected after any timestamp.
    if when is None:
        return (True, 0.0)
    return (False, -when.timestamp())


def connection_sort_key(conn: Connection) -> tuple:
    """Sort key implementing the display order.

    1. Active first.
    2. Visible before saved-only.
    3. Visible: strongest first.  Equal strengths compare equal, so a
       stable sort keeps their input order.
    4. Not visible: most recently connected first, never-connected last.
    5. Not visible: SSID ascending.
    """
    if conn.is_visible:
        return (not conn.is_active, False, -conn.strength, (False, 0.0), "")
    return (
        not conn.is_active,
        True,
        0,
        _last_connected_key(conn.last_connected),
        conn.ssid,
    )


def sort_connections(connections: list[Connection]) -> list[Connection]:
    """Return *connections* in display order.

    The sort is stable: duplicate SSIDs and equal-rank entries keep their
    relative input order.  Collapsing duplicates is the resolver's job.
    """
    return sorted(connections, key=connection_sort_key)
