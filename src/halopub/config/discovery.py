"""Locate ``halopub.toml`` and the workspace it belongs to.

Resolution order:
  1. An explicit ``--config`` path, which must exist.
  2. ``HALOPUB_CONFIG``; a path that does not exist means "no config file"
     rather than falling through to the walk-up.
  3. The nearest ``halopub.toml`` in the start directory or any parent.

The workspace root is the directory holding the config file, or the start
directory when there is none.  Relative storage and plugin paths resolve
against it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

CONFIG_FILENAME = "halopub.toml"
CONFIG_ENV_VAR = "HALOPUB_CONFIG"


@dataclass(frozen=True)
class ConfigLocation:
    path: Path | None
    workspace_root: Path


def locate_config(explicit: str | None = None, *, start: Path | None = None) -> ConfigLocation:
    """Resolve the config file and workspace root for one invocation.

    Raises :class:`FileNotFoundError` when *explicit* names a missing file.
    """
    base = (start or Path.cwd()).resolve()

    if explicit:
        path = Path(explicit)
        if not path.is_file():
            raise FileNotFoundError(explicit)
        return ConfigLocation(path, path.resolve().parent)

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        path = Path(env_path)
        if path.is_file():
            return ConfigLocation(path, path.resolve().parent)
        return ConfigLocation(None, base)

    for directory in (base, *base.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return ConfigLocation(candidate, directory)
    return ConfigLocation(None, base)
