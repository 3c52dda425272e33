"""wifitui: resolve, order and refresh wireless network state for a terminal UI."""

__version__ = "0.5.0"
