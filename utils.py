"""kuevent demo utility functions."""

import sys
from datetime import datetime


def banner(char: str = "=", width: int = 56) -> str:
    """Return a horizontal rule for terminal output."""
    return char * width


def clear_terminal() -> None:
    """Wipe the screen with ANSI escapes when stdout is a terminal."""
    if sys.stdout.isatty():
        sys.stdout.write("\033[2J\033[H")
        sys.stdout.flush()


def timestamp() -> str:
    """Wall-clock time as HH:MM:SS for demo log lines."""
    return datetime.now().strftime("%H:%M:%S")
