"""Tests for wifitui.sorting display order."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from wifitui.sorting import connection_sort_key, sort_connections
from wifitui.wifi_common import AccessPoint, Connection

NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


def _visible(ssid: str, strength: int, active: bool = False) -> Connection:
    return Connection(
        ssid=ssid,
        is_visible=True,
        is_active=active,
        access_points=[AccessPoint(ssid, strength=strength)],
    )


def _saved(ssid: str, hours_ago: int | None = None, active: bool = False) -> Connection:
    when = NOW - timedelta(hours=hours_ago) if hours_ago is not None else None
    return Connection(ssid=ssid, is_known=True, is_active=active, last_connected=when)


def _ssids(connections):
    return [c.ssid for c in connections]


# ---------------------------------------------------------------------------
# sort_connections
# ---------------------------------------------------------------------------

class TestSortConnections:
    def test_active_first(self):
        conns = [_visible("Strong", 90), _visible("Mine", 10, active=True)]
        assert _ssids(sort_connections(conns)) == ["Mine", "Strong"]

    def test_active_saved_only_still_first(self):
        conns = [_visible("Strong", 90), _saved("Hidden", active=True)]
        assert _ssids(sort_connections(conns)) == ["Hidden", "Strong"]

    def test_visible_before_saved_only(self):
        conns = [_saved("Recent", 1), _visible("Weak", 5)]
        assert _ssids(sort_connections(conns)) == ["Weak", "Recent"]

    def test_visible_strongest_first(self):
        conns = [_visible("A", 30), _visible("B", 80), _visible("C", 55)]
        assert _ssids(sort_connections(conns)) == ["B", "C", "A"]

    def test_equal_strength_keeps_input_order(self):
        conns = [_visible("Zeta", 50), _visible("Alpha", 50), _visible("Mid", 50)]
        assert _ssids(sort_connections(conns)) == ["Zeta", "Alpha", "Mid"]

    def test_saved_most_recent_first(self):
        conns = [_saved("Old", 500), _saved("New", 1), _saved("Mid", 24)]
        assert _ssids(sort_connections(conns)) == ["New", "Mid", "Old"]

    def test_saved_never_connected_last(self):
        conns = [_saved("Never"), _saved("Old", 5000)]
        assert _ssids(sort_connections(conns)) == ["Old", "Never"]

    def test_saved_ties_by_ssid(self):
        conns = [_saved("b"), _saved("a"), _saved("c", 3), _saved("B", 3)]
        assert _ssids(sort_connections(conns)) == ["B", "c", "a", "b"]

    def test_duplicates_keep_relative_order(self):
        first = _visible("Dup", 40)
        second = _visible("Dup", 40)
        result = sort_connections([first, _visible("X", 90), second])
        assert result[1] is first
        assert result[2] is second

    def test_empty_list(self):
        assert sort_connections([]) == []

    def test_returns_new_list(self):
        conns = [_visible("A", 10), _visible("B", 20)]
        result = sort_connections(conns)
        assert result is not conns
        assert _ssids(conns) == ["A", "B"]

    def test_full_ordering(self):
        conns = [
            _saved("Saved-never"),
            _visible("Weak", 20),
            _saved("Saved-old", 100),
            _visible("Strong", 90),
            _saved("Saved-new", 1),
            _visible("Current", 60, active=True),
        ]
        assert _ssids(sort_connections(conns)) == [
            "Current", "Strong", "Weak", "Saved-new", "Saved-old", "Saved-never",
        ]


# ---------------------------------------------------------------------------
# connection_sort_key
# ---------------------------------------------------------------------------

class TestConnectionSortKey:
    @pytest.mark.parametrize("conn", [
        _visible("A", 50),
        _visible("B", 0, active=True),
        _saved("C"),
        _saved("D", 2, active=True),
    ])
    def test_keys_are_mutually_comparable(self, conn):
        others = [_visible("X", 70), _saved("Y"), _saved("Z", 1)]
        for other in others:
            # Must not raise TypeError for mixed visible/saved keys.
            assert (connection_sort_key(conn) < connection_sort_key(other)) in (True, False)

    def test_visible_key_ignores_ssid(self):
        assert connection_sort_key(_visible("a", 40)) == connection_sort_key(_visible("z", 40))
