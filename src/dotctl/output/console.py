"""Rich Console factory and theme for dotctl output.

Consoles render into a StringIO buffer so every renderer keeps the
``format_result() -> str`` contract. Under CliRunner and in pipes Rich
detects no terminal and emits plain text.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

DOT_THEME = Theme(
    {
        "dot.ok": "bold green",
        "dot.error": "bold red",
        "dot.warning": "bold yellow",
        "dot.op": "bold cyan",
        "dot.key": "dim",
        "dot.path": "dim",
        "dot.package": "bold blue",
        "dot.pass": "green",
        "dot.warn": "yellow",
        "dot.fail": "bold red",
    }
)

# Style per link/inject action and per check status.
_ACTION_STYLES: dict[str, str] = {
    "linked": "dot.ok",
    "relinked": "dot.ok",
    "adopted": "dot.warning",
    "replaced": "dot.warning",
    "removed": "dot.warning",
    "written": "dot.ok",
    "would_write": "dot.warning",
    "conflict": "dot.error",
    "error": "dot.error",
    "failed": "dot.error",
    "unchanged": "dim",
    "skipped": "dim",
    "pass": "dot.pass",
    "warn": "dot.warn",
    "fail": "dot.fail",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=DOT_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for(action: str) -> str:
    """Rich style name for an action or check status."""
    return _ACTION_STYLES.get(action, "")
