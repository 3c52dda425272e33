"""Application configuration via environment variables and .env file."""

from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings.sources import DotEnvSettingsSource, PydanticBaseSettingsSource

# Path to .env file (patch in tests to use tmp_path / ".env")
_ENV_FILE: Path = Path(".env")

_LOG_LEVELS = ("debug", "info", "warn", "warning", "error")


class Settings(BaseSettings):
    model_config = {
        "env_prefix": "WIFITUI_",
        "env_file_encoding": "utf-8",
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Load .env from _ENV_FILE (patchable in tests)
        return (
            init_settings,
            env_settings,
            DotEnvSettingsSource(
                settings_cls,
                env_file=_ENV_FILE,
                env_file_encoding="utf-8",
            ),
            file_secret_settings,
        )

    # Backend: "auto", "nmcli" or "mock"
    backend: str = "auto"
    interface: str | None = None

    # Logging
    log_level: str = "info"
    log_file: Path | None = None

    # Scan scheduling
    active_scan: bool = True
    scan_fast_interval: float = 2.0
    scan_slow_interval: float = 10.0
    scan_slow_after: int = 3

    # Worker threads for backend commands
    workers: int = 4

    @field_validator("log_level", mode="before")
    @classmethod
    def normalise_log_level(cls, v: object) -> str:
        level = str(v).strip().lower()
        if level not in _LOG_LEVELS:
            raise ValueError(f"invalid log level: {v!r}")
        return "warning" if level == "warn" else level

    @field_validator("backend", mode="before")
    @classmethod
    def normalise_backend(cls, v: object) -> str:
        return str(v).strip().lower()

    @field_validator("scan_fast_interval", "scan_slow_interval")
    @classmethod
    def positive_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("scan intervals must be positive")
        return v

    @field_validator("scan_slow_after", "workers")
    @classmethod
    def at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v


def load_config(**overrides: object) -> Settings:
    """Load configuration from .env and environment (env overrides .env).

    Keyword overrides (from command-line flags) take precedence over both;
    ``None`` values are ignored.
    """
    values = {k: v for k, v in overrides.items() if v is not None}
    return Settings(**values)
