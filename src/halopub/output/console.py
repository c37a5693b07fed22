"""Rich Console factory and theme for halopub output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract.  In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

HALO_THEME = Theme(
    {
        "halo.ok": "bold green",
        "halo.error": "bold red",
        "halo.warning": "bold yellow",
        "halo.cancelled": "bold yellow",
        "halo.op": "bold cyan",
        "halo.key": "dim",
        "halo.id": "bold blue",
        "halo.url": "underline",
        "halo.title": "bold",
        "halo.status.published": "green",
        "halo.status.draft": "yellow",
    }
)

_STATUS_STYLES: dict[str, str] = {
    "published": "halo.status.published",
    "draft": "halo.status.draft",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=HALO_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_status(status: str) -> str:
    """Return the Rich style name for a post status."""
    return _STATUS_STYLES.get(status, "")
