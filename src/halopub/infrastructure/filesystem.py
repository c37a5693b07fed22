"""File-backed editor — the local document a publish or pull operates on.

The CLI has no editor buffer; the Markdown file plays that role.
``get_value()`` normalizes CRLF line endings so the front-matter codec
only ever sees ``\\n``.
"""

from __future__ import annotations

from pathlib import Path


class FileEditor:
    """Read and replace the full text of a Markdown file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def get_value(self) -> str:
        return self.path.read_text(encoding="utf-8").replace("\r\n", "\n")

    def set_value(self, text: str) -> None:
        self.path.write_text(text, encoding="utf-8", newline="")
