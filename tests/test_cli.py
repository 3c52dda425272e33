"""Tests for wifitui.cli subcommands and argument handling."""

from __future__ import annotations

import io
import json
import logging
import os
from unittest.mock import MagicMock, patch

import pytest

from wifitui import __version__
from wifitui.app import WifiApp
from wifitui.backends.mock import MockBackend, SavedProfile
from wifitui.cli import (
    _cbreak,
    _configure_logging,
    _parse_args,
    _read_key,
    handle_key,
    main,
    run_connect,
    run_list,
    run_radio,
    run_show,
)
from wifitui.config import Settings
from wifitui.errors import (
    NotFoundError,
    NotSupportedError,
    OperationFailedError,
    WirelessDisabledError,
)
from wifitui.wifi_common import AccessPoint, KnownRecord, SecurityType


@pytest.fixture
def backend():
    return MockBackend(
        visible=[
            AccessPoint("Cafe", strength=80, security=SecurityType.WPA),
            AccessPoint("Library", strength=40, security=SecurityType.OPEN),
        ],
        saved=[
            SavedProfile(KnownRecord("Cafe", id="c1"), "latte"),
            SavedProfile(KnownRecord("Home", id="h1", security=SecurityType.WPA), "hunter2"),
        ],
        active_ssid="Cafe",
        action_sleep=0,
    )


@pytest.fixture
def out():
    return io.StringIO()


# ---------------------------------------------------------------------------
# list
# ---------------------------------------------------------------------------

class TestRunList:
    def test_visible_only_by_default(self, backend, out):
        run_list(out, backend, json_output=False, show_all=False, scan=False)
        lines = out.getvalue().splitlines()
        assert lines == ["Cafe\t80%, visible, secure, active", "Library\t40%, visible"]

    def test_all_includes_saved(self, backend, out):
        run_list(out, backend, json_output=False, show_all=True, scan=False)
        assert out.getvalue().splitlines()[-1] == "Home\tsecure"

    def test_json(self, backend, out):
        run_list(out, backend, json_output=True, show_all=True, scan=False)
        data = json.loads(out.getvalue())
        assert [d["ssid"] for d in data] == ["Cafe", "Library", "Home"]
        assert data[0]["active"] is True

    def test_radio_off_raises(self, backend, out):
        backend.radio_enabled = False
        with pytest.raises(WirelessDisabledError):
            run_list(out, backend, json_output=False, show_all=False, scan=False)


# ---------------------------------------------------------------------------
# show
# ---------------------------------------------------------------------------

class TestRunShow:
    def test_known_network(self, backend, out):
        run_show(out, backend, "Cafe", json_output=False)
        text = out.getvalue()
        assert "SSID: Cafe" in text
        assert "Passphrase: latte" in text
        assert "Active: True" in text

    def test_visible_only_has_no_passphrase(self, backend, out):
        run_show(out, backend, "Library", json_output=False)
        assert "Passphrase: \n" in out.getvalue()

    def test_json_includes_passphrase(self, backend, out):
        run_show(out, backend, "Home", json_output=True)
        data = json.loads(out.getvalue())
        assert data["passphrase"] == "hunter2"
        assert data["visible"] is False

    def test_missing_network(self, backend, out):
        with pytest.raises(NotFoundError):
            run_show(out, backend, "Nowhere", json_output=False)

    def test_secret_not_supported(self, backend, out):
        backend.get_secret_error = NotSupportedError("no keychain access")
        run_show(out, backend, "Cafe", json_output=False)
        assert "Passphrase: \n" in out.getvalue()

    def test_secret_failure_for_saved_network_raises(self, backend, out):
        backend.get_secret_error = OperationFailedError("keyring locked")
        with pytest.raises(OperationFailedError):
            run_show(out, backend, "Cafe", json_output=False)


# ---------------------------------------------------------------------------
# connect
# ---------------------------------------------------------------------------

class TestRunConnect:
    def test_activate_saved(self, backend, out):
        run_connect(out, backend, "Home", passphrase="", security=SecurityType.WPA, hidden=False)
        assert backend.active_ssid == "Home"
        assert "Activating existing network" in out.getvalue()

    def test_join_with_passphrase(self, backend, out):
        run_connect(out, backend, "Library", passphrase="pw", security=SecurityType.WPA, hidden=False)
        assert backend.active_ssid == "Library"
        assert "Joining network" in out.getvalue()

    def test_join_hidden_without_passphrase(self, backend, out):
        run_connect(out, backend, "Ghost", passphrase="", security=SecurityType.OPEN, hidden=True)
        assert backend.saved[-1].record.is_hidden is True

    def test_failure_without_retry_raises(self, backend, out):
        with pytest.raises(NotFoundError):
            run_connect(out, backend, "Library", passphrase="", security=SecurityType.WPA, hidden=False)

    @patch("wifitui.cli.time.sleep")
    def test_retry_until_success(self, mock_sleep, out):
        backend = MagicMock()
        backend.activate.side_effect = [OperationFailedError("busy"), None]
        run_connect(out, backend, "Cafe", passphrase="", security=SecurityType.WPA, hidden=False, retry_for=60)
        assert backend.activate.call_count == 2
        mock_sleep.assert_called_once_with(5)
        assert "Retrying in 5 seconds" in out.getvalue()

    @patch("wifitui.cli.time.sleep")
    @patch("wifitui.cli.time.monotonic")
    def test_retry_gives_up(self, mock_monotonic, mock_sleep, out):
        mock_monotonic.side_effect = [0, 10, 70]
        backend = MagicMock()
        backend.activate.side_effect = OperationFailedError("busy")
        with pytest.raises(OperationFailedError):
            run_connect(out, backend, "Cafe", passphrase="", security=SecurityType.WPA, hidden=False, retry_for=60)
        assert backend.activate.call_count == 2


# ---------------------------------------------------------------------------
# radio
# ---------------------------------------------------------------------------

class TestRunRadio:
    def test_off(self, backend, out):
        run_radio(out, backend, "off")
        assert backend.radio_enabled is False
        assert "WiFi radio is off" in out.getvalue()

    def test_on(self, backend, out):
        backend.radio_enabled = False
        run_radio(out, backend, "on")
        assert backend.radio_enabled is True

    def test_toggle(self, backend, out):
        run_radio(out, backend, "toggle")
        assert backend.radio_enabled is False
        run_radio(out, backend, "toggle")
        assert backend.radio_enabled is True


# ---------------------------------------------------------------------------
# watch keys
# ---------------------------------------------------------------------------

class TestHandleKey:
    @pytest.mark.parametrize("key, action", [
        ("r", "scan"),
        ("s", "toggle_scanning"),
        ("W", "toggle_radio"),
        ("x", "dismiss_error"),
    ])
    def test_key_runs_action(self, key, action):
        app = MagicMock(spec=WifiApp)
        assert handle_key(app, key) is True
        getattr(app, action).assert_called_once_with()

    def test_quit(self):
        app = MagicMock(spec=WifiApp)
        assert handle_key(app, "q") is False
        assert app.method_calls == []

    def test_unbound_key_ignored(self):
        app = MagicMock(spec=WifiApp)
        assert handle_key(app, "z") is True
        assert app.method_calls == []

    def test_keys_drive_mock_backend(self, backend):
        app = WifiApp(backend, Settings(workers=1))
        try:
            app.radio_enabled = True
            handle_key(app, "w")
            handle_key(app, "s")
            assert app.scheduler.enabled is False
            assert app.pump(timeout=3.0) is True
            assert backend.radio_enabled is False
            assert app.view == "disabled"
        finally:
            app.stop()


class TestKeyInput:
    def test_non_tty_yields_none(self):
        with _cbreak(io.StringIO()) as keys:
            assert keys is None

    def test_read_key_from_pipe(self):
        read_fd, write_fd = os.pipe()
        with os.fdopen(read_fd) as stream:
            assert _read_key(stream, 0) is None
            os.write(write_fd, b"r")
            os.close(write_fd)
            assert _read_key(stream, 1.0) == "r"


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

class TestParseArgs:
    def test_no_command(self):
        args = _parse_args([])
        assert args.command is None
        assert args.backend is None

    def test_global_flags(self):
        args = _parse_args(["--backend", "mock", "-i", "wlan0", "--log-level", "debug", "list"])
        assert (args.backend, args.interface, args.log_level) == ("mock", "wlan0", "debug")

    def test_list_flags(self):
        args = _parse_args(["list", "--json", "--all", "--scan"])
        assert args.json_output and args.show_all and args.scan

    def test_connect_flags(self):
        args = _parse_args(["connect", "Cafe", "--passphrase", "pw", "--security", "wep", "--hidden", "--retry-for", "30"])
        assert args.ssid == "Cafe"
        assert args.security == "wep"
        assert args.hidden is True
        assert args.retry_for == 30.0

    def test_radio_default_toggle(self):
        assert _parse_args(["radio"]).action == "toggle"

    def test_bad_backend_exits(self):
        with pytest.raises(SystemExit):
            _parse_args(["--backend", "carrier-pigeon"])

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            _parse_args(["--version"])
        assert __version__ in capsys.readouterr().out


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

class TestConfigureLogging:
    def test_file_handler_added(self, tmp_path):
        root = logging.getLogger()
        before = list(root.handlers)
        log_file = tmp_path / "wifitui.log"
        try:
            _configure_logging(Settings(log_level="debug", log_file=log_file))
            added = [h for h in root.handlers if h not in before]
            assert any(isinstance(h, logging.FileHandler) for h in added)
        finally:
            for handler in root.handlers[:]:
                if handler not in before:
                    root.removeHandler(handler)
                    handler.close()

    def test_unwritable_log_file_warns(self, tmp_path, caplog):
        _configure_logging(Settings(log_file=tmp_path / "missing" / "dir" / "x.log"))
        assert "cannot open log file" in caplog.text

    @patch("wifitui.cli.logging.basicConfig")
    def test_watch_mode_never_writes_to_terminal(self, mock_basic, tmp_path):
        root = logging.getLogger()
        before = list(root.handlers)
        level = root.level
        try:
            _configure_logging(Settings(log_file=tmp_path / "watch.log"), console=False)
            mock_basic.assert_not_called()
            added = [h for h in root.handlers if h not in before]
            assert {type(h) for h in added} == {logging.NullHandler, logging.FileHandler}
            logging.getLogger("wifitui.app").error("scan failed")
            assert "scan failed" in (tmp_path / "watch.log").read_text()
        finally:
            root.setLevel(level)
            for handler in root.handlers[:]:
                if handler not in before:
                    root.removeHandler(handler)
                    handler.close()


# ---------------------------------------------------------------------------
# main
# ---------------------------------------------------------------------------

class TestMain:
    @pytest.fixture(autouse=True)
    def quiet_logging(self):
        with patch("wifitui.cli._configure_logging") as mock_logging:
            yield mock_logging

    def test_list_with_mock_backend(self, capsys):
        main(["--backend", "mock", "list"])
        assert "Multi-AP Network" in capsys.readouterr().out

    def test_backend_from_env(self, monkeypatch, capsys):
        monkeypatch.setenv("WIFITUI_BACKEND", "mock")
        main(["list", "--json"])
        data = json.loads(capsys.readouterr().out)
        assert any(d["ssid"] == "TacoBoutAGoodSignal" for d in data)

    def test_wifi_error_exits_1(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--backend", "mock", "show", "Nowhere"])
        assert exc.value.code == 1
        assert "error: network not found: Nowhere" in capsys.readouterr().err

    def test_invalid_config_exits_2(self, monkeypatch, capsys):
        monkeypatch.setenv("WIFITUI_WORKERS", "0")
        with pytest.raises(SystemExit) as exc:
            main(["list"])
        assert exc.value.code == 2
        assert "invalid configuration" in capsys.readouterr().err

    def test_unknown_backend_from_env_exits_1(self, monkeypatch, capsys):
        monkeypatch.setenv("WIFITUI_BACKEND", "carrier-pigeon")
        with pytest.raises(SystemExit) as exc:
            main(["list"])
        assert exc.value.code == 1
        assert "unknown backend" in capsys.readouterr().err

    @patch("wifitui.cli.run_watch")
    def test_default_command_is_watch(self, mock_watch, quiet_logging):
        main(["--backend", "mock"])
        mock_watch.assert_called_once()
        assert quiet_logging.call_args.kwargs == {"console": False}

    def test_other_commands_log_to_console(self, quiet_logging, capsys):
        main(["--backend", "mock", "list"])
        assert quiet_logging.call_args.kwargs == {"console": True}

    @patch("wifitui.cli.run_connect")
    def test_connect_parses_security(self, mock_connect):
        main(["--backend", "mock", "connect", "Cafe", "--security", "open"])
        assert mock_connect.call_args.kwargs["security"] == SecurityType.OPEN
