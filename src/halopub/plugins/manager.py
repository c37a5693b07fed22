"""Plugin registry for rendering and lifecycle hooks.

Plugins come from three places, registered in this order:

1. The built-in renderers (:meth:`PluginManager.register_builtins`).
2. Installed distributions exposing a ``halopub.plugins`` entry point.
3. Single-file plugins in the workspace's local plugin directory.

pluggy calls later registrations first, so a local renderer overrides an
installed one, which overrides the built-in CommonMark renderer.  A plugin
that fails to import is logged and skipped.  An entry point must resolve
to a module or a plugin instance, not a class.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from typing import TYPE_CHECKING

import pluggy

from halopub.infrastructure.markdown import render_markdown
from halopub.plugins.hookspecs import HalopubHookSpec

if TYPE_CHECKING:
    from pathlib import Path
    from types import ModuleType

PROJECT_NAME = "halopub"
ENTRY_POINT_GROUP = "halopub.plugins"
LOCAL_MODULE_PREFIX = "halopub_local_plugin_"

logger = logging.getLogger(__name__)


class PluginManager:
    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(HalopubHookSpec)

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        plugin_name = name or type(plugin).__name__
        self._pm.register(plugin, name=plugin_name)
        logger.debug("Registered plugin: %s", plugin_name)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    def register_builtins(self) -> None:
        from halopub.plugins.builtins.renderers import BasicRenderer, CommonMarkRenderer

        self.register_plugin(BasicRenderer(), name="halopub.basic-renderer")
        self.register_plugin(CommonMarkRenderer(), name="halopub.commonmark-renderer")

    def discover_and_load(self, *, local_dir: Path | None = None) -> list[str]:
        """Load entry-point plugins, then local ones; return all plugin names."""
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        if local_dir is not None and local_dir.is_dir():
            for path in sorted(local_dir.glob("*.py")):
                if not path.name.startswith("_"):
                    self._load_local(path)
        return self.list_plugin_names()

    def list_plugin_names(self) -> list[str]:
        return [name for name, _plugin in self._pm.list_name_plugin()]

    def render(self, markdown: str) -> str:
        """Run the ``render_markdown`` hook; the minimal renderer if all decline."""
        html = self._pm.hook.render_markdown(markdown=markdown)
        return render_markdown(markdown) if html is None else str(html)

    # -- local plugins ---------------------------------------------------

    def _load_local(self, path: Path) -> None:
        """Register a plugin file's module-level hooks and its hook classes."""
        module_name = LOCAL_MODULE_PREFIX + path.stem
        module = _import_file(module_name, path)
        if module is None:
            return

        if self._has_hookimpls(module):
            self.register_plugin(module, name=module_name)

        for cls_name, cls in inspect.getmembers(module, inspect.isclass):
            if cls.__module__ != module_name or not self._has_hookimpls(cls):
                continue
            try:
                instance = cls()
            except Exception:
                logger.warning("Could not instantiate %s from %s", cls_name, path, exc_info=True)
                continue
            self.register_plugin(instance, name=f"{module_name}.{cls_name}")

    def _has_hookimpls(self, obj: object) -> bool:
        return any(
            self._pm.parse_hookimpl_opts(obj, attr) is not None
            for attr in dir(obj)
            if not attr.startswith("_")
        )


def _import_file(module_name: str, path: Path) -> ModuleType | None:
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        logger.warning("Not an importable plugin file: %s", path)
        return None
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception:
        sys.modules.pop(module_name, None)
        logger.warning("Failed to load local plugin %s", path, exc_info=True)
        return None
    return module
