"""Command-line interface for wifitui.

Usage:
    wifitui list                              # visible networks
    wifitui list --all --json                 # include saved-only networks
    wifitui show "Cafe"                       # details and saved passphrase
    wifitui connect "Cafe"                    # activate a saved network
    wifitui connect "Cafe" --passphrase s3cr3t
    wifitui radio off
    wifitui watch                             # live view; r rescan, s scanning, w radio, q quit
    wifitui --backend mock watch              # demo without a real radio
"""

from __future__ import annotations

import argparse
import contextlib
import json
import logging
import os
import select
import sys
import termios
import time
import tty
from collections.abc import Iterator
from typing import TextIO

from pydantic import ValidationError
from rich.console import Console, Group
from rich.live import Live
from rich.text import Text

from wifitui import __version__
from wifitui.app import WifiApp
from wifitui.backends import BACKEND_NAMES, Backend, get_backend
from wifitui.config import Settings, load_config
from wifitui.display.tables import build_connection_table, build_status_line, describe_connection
from wifitui.errors import NotFoundError, NotSupportedError, WifiError
from wifitui.resolver import build_network_list
from wifitui.wifi_common import SecurityType, format_since

_LOGGER = logging.getLogger("wifitui")
_LOG_FORMAT = "%(name)s: %(levelname)s: %(message)s"
RETRY_DELAY = 5
KEY_POLL_INTERVAL = 0.25
WATCH_HELP = "r rescan  s toggle scanning  w toggle radio  x dismiss error  q quit"


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------

def run_list(out: TextIO, backend: Backend, *, json_output: bool, show_all: bool, scan: bool) -> None:
    connections = build_network_list(backend, scan)
    if not show_all:
        connections = [c for c in connections if c.is_visible]

    if json_output:
        print(json.dumps([c.to_dict() for c in connections], indent=2), file=out)
        return
    for conn in connections:
        print(f"{conn.ssid}\t{describe_connection(conn)}", file=out)


def run_show(out: TextIO, backend: Backend, ssid: str, *, json_output: bool) -> None:
    connections = build_network_list(backend, True)
    conn = next((c for c in connections if c.ssid == ssid), None)
    if conn is None:
        raise NotFoundError(f"network not found: {ssid}")

    try:
        secret = backend.get_secret(ssid)
    except NotSupportedError:
        secret = ""
    except WifiError:
        # Expected for visible-only networks; an error for saved ones.
        if conn.is_known:
            raise
        secret = ""

    if json_output:
        data = conn.to_dict()
        if secret:
            data["passphrase"] = secret
        print(json.dumps(data, indent=2), file=out)
        return

    print(f"SSID: {conn.ssid}", file=out)
    print(f"Passphrase: {secret}", file=out)
    print(f"Active: {conn.is_active}", file=out)
    print(f"Known: {conn.is_known}", file=out)
    print(f"Secure: {conn.is_secure}", file=out)
    print(f"Visible: {conn.is_visible}", file=out)
    print(f"Hidden: {conn.is_hidden}", file=out)
    print(f"Strength: {conn.strength}%", file=out)
    if conn.last_connected is not None:
        print(f"Last Connected: {format_since(conn.last_connected)}", file=out)


def run_connect(
    out: TextIO,
    backend: Backend,
    ssid: str,
    *,
    passphrase: str,
    security: SecurityType,
    hidden: bool,
    retry_for: float = 0,
) -> None:
    start = time.monotonic()
    while True:
        try:
            if passphrase or hidden:
                print(f"Joining network {ssid!r}...", file=out)
                backend.join(ssid, passphrase, security, hidden)
            else:
                print(f"Activating existing network {ssid!r}...", file=out)
                backend.activate(ssid)
            return
        except WifiError as exc:
            if not retry_for or time.monotonic() - start >= retry_for:
                raise
            print(f"Connection failed: {exc}. Retrying in {RETRY_DELAY} seconds...", file=out)
            time.sleep(RETRY_DELAY)


def run_radio(out: TextIO, backend: Backend, action: str) -> None:
    if action == "on":
        enabled = True
    elif action == "off":
        enabled = False
    else:
        enabled = not backend.is_radio_enabled()

    print(f"{'Enabling' if enabled else 'Disabling'} WiFi radio...", file=out)
    backend.set_radio_enabled(enabled)
    print(f"WiFi radio is {'on' if enabled else 'off'}", file=out)


def handle_key(app: WifiApp, key: str) -> bool:
    """Apply one watch-mode keypress.  Returns False when it asks to quit."""
    key = key.lower()
    if key == "q":
        return False
    if key == "r":
        app.scan()
    elif key == "s":
        app.toggle_scanning()
    elif key == "w":
        app.toggle_radio()
    elif key == "x":
        app.dismiss_error()
    return True


@contextlib.contextmanager
def _cbreak(stream: TextIO) -> Iterator[TextIO | None]:
    """Read *stream* key by key while inside the block.

    Yields None when *stream* is not a terminal; the caller then runs
    without keyboard input.
    """
    if not stream.isatty():
        yield None
        return
    fd = stream.fileno()
    saved = termios.tcgetattr(fd)
    try:
        tty.setcbreak(fd)
        yield stream
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)


def _read_key(stream: TextIO, timeout: float) -> str | None:
    ready, _, _ = select.select([stream], [], [], timeout)
    if not ready:
        return None
    return os.read(stream.fileno(), 1).decode(errors="ignore") or None


def run_watch(backend: Backend, settings: Settings, console: Console) -> None:
    """Live view: the app model drives scans, Rich redraws on each message."""
    app = WifiApp(backend, settings)

    def render(current: WifiApp) -> Group:
        return Group(
            build_connection_table(current.connections),
            build_status_line(current),
            Text(WATCH_HELP, style="dim"),
        )

    app.start()
    try:
        with _cbreak(sys.stdin) as keys, Live(
            render(app), console=console, refresh_per_second=4, screen=True,
        ) as live:
            app.on_change = lambda current: live.update(render(current))
            while True:
                if keys is None:
                    app.pump(timeout=KEY_POLL_INTERVAL)
                    continue
                key = _read_key(keys, KEY_POLL_INTERVAL)
                if key is not None:
                    if not handle_key(app, key):
                        break
                    live.update(render(app))
                app.run_pending()
    except KeyboardInterrupt:
        pass
    finally:
        app.stop()


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="wifitui",
        description="List, inspect and manage Wi-Fi networks.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--backend", choices=BACKEND_NAMES,
        help="network backend (default: auto; env: WIFITUI_BACKEND)",
    )
    parser.add_argument(
        "-i", "--interface",
        help="wireless interface (default: first available)",
    )
    parser.add_argument(
        "--log-level", choices=("debug", "info", "warn", "error"),
        help="log level (default: info; env: WIFITUI_LOG_LEVEL)",
    )
    parser.add_argument("--log-file", help="path to log file (default: stderr)")

    sub = parser.add_subparsers(dest="command")

    list_p = sub.add_parser("list", help="list wifi networks")
    list_p.add_argument("--json", action="store_true", dest="json_output", help="output as JSON")
    list_p.add_argument("--all", action="store_true", dest="show_all", help="include saved networks that are not visible")
    list_p.add_argument("--scan", action="store_true", help="rescan before listing")

    show_p = sub.add_parser("show", help="show a wifi network")
    show_p.add_argument("ssid")
    show_p.add_argument("--json", action="store_true", dest="json_output", help="output as JSON")

    connect_p = sub.add_parser("connect", help="connect to a wifi network")
    connect_p.add_argument("ssid")
    connect_p.add_argument("--passphrase", default="", help="passphrase for the network")
    connect_p.add_argument(
        "--security", default="wpa", choices=("open", "wep", "wpa"),
        help="security type (default: wpa)",
    )
    connect_p.add_argument("--hidden", action="store_true", help="network is hidden")
    connect_p.add_argument(
        "--retry-for", type=float, default=0, metavar="SECONDS",
        help="keep retrying for this many seconds",
    )

    radio_p = sub.add_parser("radio", help="turn the wifi radio on or off")
    radio_p.add_argument("action", nargs="?", default="toggle", choices=("on", "off", "toggle"))

    sub.add_parser("watch", help="live view of networks (default)")

    return parser.parse_args(argv)


def _configure_logging(settings: Settings, *, console: bool = True) -> None:
    """Log to stderr, plus ``log_file`` when set.

    With ``console=False`` (the full-screen watch view) nothing is written
    to the terminal; records go to ``log_file`` only, or are dropped.
    """
    level = getattr(logging, settings.log_level.upper())
    root = logging.getLogger()
    if console:
        logging.basicConfig(level=level, format=_LOG_FORMAT, stream=sys.stderr)
    else:
        root.setLevel(level)
        root.addHandler(logging.NullHandler())
    if settings.log_file is not None:
        try:
            file_handler = logging.FileHandler(settings.log_file, mode="a", encoding="utf-8")
        except OSError as exc:
            _LOGGER.warning("cannot open log file %s: %s", settings.log_file, exc)
            return
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        root.addHandler(file_handler)


def main(argv: list[str] | None = None) -> None:
    """Parse arguments, pick a backend and run the requested command."""
    args = _parse_args(argv)
    try:
        settings = load_config(
            backend=args.backend,
            interface=args.interface,
            log_level=args.log_level,
            log_file=args.log_file,
        )
    except ValidationError as exc:
        print(f"error: invalid configuration: {exc}", file=sys.stderr)
        sys.exit(2)

    command = args.command or "watch"
    _configure_logging(settings, console=command != "watch")
    out = sys.stdout

    try:
        backend = get_backend(settings.backend, settings.interface)
        if command == "list":
            run_list(out, backend, json_output=args.json_output, show_all=args.show_all, scan=args.scan)
        elif command == "show":
            run_show(out, backend, args.ssid, json_output=args.json_output)
        elif command == "connect":
            run_connect(
                out, backend, args.ssid,
                passphrase=args.passphrase,
                security=SecurityType.parse(args.security),
                hidden=args.hidden,
                retry_for=args.retry_for,
            )
        elif command == "radio":
            run_radio(out, backend, args.action)
        else:
            run_watch(backend, settings, Console())
    except (WifiError, ValueError) as exc:
        _LOGGER.debug("command failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
