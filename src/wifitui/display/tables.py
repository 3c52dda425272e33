"""Rich TUI table builders for wifitui.

Builds Rich :class:`Table` objects for the resolved connection list and a
status footer for the live view.  Can be used standalone for testing table
rendering::

    python -m wifitui.display.tables          # render a demo table
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.markup import escape
from rich.table import Table
from rich.text import Text

from wifitui.wifi_common import (
    COLOR_TO_RICH,
    Connection,
    SecurityType,
    format_since,
    security_color,
    strength_color,
    strength_to_bars,
)

if TYPE_CHECKING:
    from wifitui.app import WifiApp


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _rich_color(rgb: tuple) -> str:  # type: ignore[type-arg]
    """Convert an RGB tuple to a Rich color name."""
    return COLOR_TO_RICH.get(rgb, "white")


def _bar_string(bars: int) -> str:
    """Build a signal-bar string like '▂▄▆█'."""
    chars = ["▂", "▄", "▆", "█"]
    return "".join(chars[i] if i < bars else " " for i in range(4))


def _security_label(security: SecurityType) -> str:
    if security == SecurityType.UNKNOWN:
        return "?"
    return security.value.upper() if security != SecurityType.OPEN else "Open"


def describe_connection(conn: Connection) -> str:
    """One-line summary, e.g. ``"87%, visible, secure, active"``."""
    parts: list[str] = []
    if conn.is_visible:
        parts.append(f"{conn.strength}%")
        parts.append("visible")
    if conn.is_secure:
        parts.append("secure")
    if conn.is_active:
        parts.append("active")
    return ", ".join(parts)


# ---------------------------------------------------------------------------
# Connection table
# ---------------------------------------------------------------------------

def build_connection_table(
    connections: list[Connection],
    title: str = "Wi-Fi Networks",
    caption_override: str | None = None,
) -> Table:
    """Build a Rich Table displaying resolved connections.

    Args:
        connections: Connections already in display order.
        title: Table title.
        caption_override: Optional caption to use instead of the count.
    """
    caption = caption_override if caption_override is not None else f"{len(connections)} networks"
    table = Table(
        title=title,
        title_style="bold cyan",
        caption=caption,
        caption_style="grey50",
        expand=True,
        show_lines=False,
        padding=(0, 1),
    )
    table.add_column("#", style="grey50", width=3, justify="right")
    table.add_column("Con", justify="center", width=3)
    table.add_column("SSID", style="white", min_width=15, max_width=32)
    table.add_column("Saved", justify="center", width=5)
    table.add_column("%", justify="right", width=4)
    table.add_column("Sig", width=5)
    table.add_column("APs", justify="right", width=4)
    table.add_column("Security", width=8)
    table.add_column("Last seen", style="grey50", min_width=10)

    for i, conn in enumerate(connections, 1):
        ssid = escape(conn.ssid)
        if conn.is_hidden:
            ssid += " [dim](hidden)[/dim]"

        if conn.is_visible:
            sig_c = _rich_color(strength_color(conn.strength))
            strength = f"[{sig_c}]{conn.strength}[/{sig_c}]"
            bars = f"[{sig_c}]{_bar_string(strength_to_bars(conn.strength))}[/{sig_c}]"
            last_seen = "now"
        else:
            strength = bars = ""
            last_seen = format_since(conn.last_connected) if conn.last_connected else "never"

        sec_c = _rich_color(security_color(conn.security))
        table.add_row(
            str(i),
            "[green]●[/green]" if conn.is_active else "",
            ssid,
            "[green]*[/green]" if conn.is_known else "",
            strength,
            bars,
            str(len(conn.access_points)) if conn.access_points else "",
            f"[{sec_c}]{_security_label(conn.security)}[/{sec_c}]",
            last_seen,
            style="bold" if conn.is_active else ("dim" if not conn.is_visible else ""),
        )

    return table


# ---------------------------------------------------------------------------
# Status footer
# ---------------------------------------------------------------------------

def build_status_line(app: WifiApp) -> Text:
    """Footer for the live view: status message, errors and scan state."""
    parts: list[str] = []
    if app.view == "disabled":
        parts.append("[yellow]Wi-Fi radio is off[/yellow]")
    if app.error is not None:
        parts.append(f"[red]Error: {escape(str(app.error))}[/red]")
    if app.status_message:
        prefix = "… " if app.loading else ""
        parts.append(f"[cyan]{prefix}{escape(app.status_message)}[/cyan]")
    scan = app.scheduler.state.value if app.scheduler.enabled else "off (manual)"
    parts.append(f"[grey50]Active scan: {scan}[/grey50]")
    return Text.from_markup(" • ".join(parts))


# ---------------------------------------------------------------------------
# Standalone CLI (demo)
# ---------------------------------------------------------------------------

def main() -> None:
    """Render a demo table with sample data for visual testing."""
    from rich.console import Console

    from wifitui.backends.mock import MockBackend
    from wifitui.resolver import build_network_list

    backend = MockBackend.with_sample_networks(action_sleep=0)
    console = Console()
    console.print(build_connection_table(build_network_list(backend)))


if __name__ == "__main__":
    main()
