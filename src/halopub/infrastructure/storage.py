"""Key-value settings storage backed by a single JSON file.

Writes go to a temporary sibling file which then replaces the target, so
a crash mid-write never leaves a truncated store behind.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """The store could not be written."""


class JsonStorage:
    """``get``/``set`` over a JSON object persisted at *path*."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _load(self) -> dict[str, Any]:
        if not self.path.is_file():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Unreadable settings store %s; using defaults", self.path, exc_info=True)
            return {}
        if not isinstance(data, dict):
            logger.warning("Settings store %s is not a JSON object; using defaults", self.path)
            return {}
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(data, fh, indent=2, ensure_ascii=False)
                    fh.write("\n")
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            msg = f"Cannot write settings store {self.path}: {exc}"
            raise StorageError(msg) from exc
