"""Entry point for ``python -m wifitui``."""

from wifitui.cli import main

if __name__ == "__main__":
    main()
