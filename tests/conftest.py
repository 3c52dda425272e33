"""Shared fixtures: keep the developer's .env and WIFITUI_* variables out of tests."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    for key in list(os.environ):
        if key.startswith("WIFITUI_"):
            monkeypatch.delenv(key)
    with patch("wifitui.config._ENV_FILE", tmp_path / ".env"):
        yield tmp_path / ".env"
