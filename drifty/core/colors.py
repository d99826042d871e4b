"""
Terminal color utilities for drifty.

Provides ANSI color codes and formatting helpers for the report and the
interactive check. Colors are only emitted when stdout is a TTY and have not
been switched off with ``--no-color`` (or ``NO_COLOR`` in the environment).
"""

import os
import re
import sys

_enabled = 'NO_COLOR' not in os.environ

_ANSI = re.compile(r'\033\[[0-9;]*m')


class Colors:
    """ANSI color codes for terminal output."""
    RED = '\033[91m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    BLUE = '\033[94m'
    MAGENTA = '\033[95m'
    CYAN = '\033[96m'

    BOLD = '\033[1m'
    DIM = '\033[2m'
    REVERSE = '\033[7m'

    RESET = '\033[0m'


STATUS_COLORS = {
    'CURRENT': Colors.GREEN,
    'DRIFTED': Colors.YELLOW,
    'MISSING': Colors.RED,
    'INVALID': Colors.MAGENTA,
}


def set_enabled(enabled: bool):
    """Globally switch colored output on or off."""
    global _enabled
    _enabled = enabled


def colors_enabled() -> bool:
    return _enabled and sys.stdout.isatty()


def colorize(text: str, color: str) -> str:
    """
    Add color to text if stdout is a TTY.

    Args:
        text: Text to colorize
        color: ANSI color code from Colors class

    Returns:
        Colored text if enabled, plain text otherwise
    """
    if colors_enabled():
        return f"{color}{text}{Colors.RESET}"
    return text


def strip_ansi(text: str) -> str:
    return _ANSI.sub('', text)


def success(text: str) -> str:
    """Format text as success (green)."""
    return colorize(text, Colors.GREEN)


def error(text: str) -> str:
    """Format text as error (red)."""
    return colorize(text, Colors.RED)


def warning(text: str) -> str:
    """Format text as warning (yellow)."""
    return colorize(text, Colors.YELLOW)


def info(text: str) -> str:
    """Format text as info (blue)."""
    return colorize(text, Colors.BLUE)


def bold(text: str) -> str:
    return colorize(text, Colors.BOLD)


def dim(text: str) -> str:
    return colorize(text, Colors.DIM)


def status_label(status: str, width: int = 8) -> str:
    """Status token padded to ``width`` and colored by severity."""
    return colorize(status.ljust(width), STATUS_COLORS.get(status, Colors.RESET))


def print_box(lines: list, title: str = "", width: int = 60):
    """
    Print text in a bordered box.

    Args:
        lines: List of strings to print inside box
        title: Optional title for top of box
        width: Width of box in characters

    Example:
        print_box([
            "Updated 3 hash(es)",
            "Removed 1 entry"
        ], title="Summary")
    """
    horizontal = '─'
    vertical = colorize('│', Colors.BOLD)

    if title:
        title_text = f" {title} "
        padding = (width - len(title_text) - 2) // 2
        top_line = (
            '╭' + horizontal * padding +
            title_text +
            horizontal * (width - len(title_text) - padding - 2) +
            '╮'
        )
    else:
        top_line = '╭' + horizontal * (width - 2) + '╮'
    print(colorize(top_line, Colors.BOLD))

    max_content_width = width - 6
    for line in lines:
        clean_line = strip_ansi(line)
        if len(clean_line) > max_content_width:
            line = clean_line[:max_content_width - 3] + "..."
            clean_line = line
        padding = max(0, width - len(clean_line) - 4)
        print(vertical + f"  {line}" + ' ' * padding + vertical)

    print(colorize('╰' + horizontal * (width - 2) + '╯', Colors.BOLD))
