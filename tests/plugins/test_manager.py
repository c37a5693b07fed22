"""Tests for PluginManager: rendering hook, override order, local plugin files."""

from __future__ import annotations

from pathlib import Path

import pluggy

from halopub.infrastructure.markdown import render_commonmark, render_markdown
from halopub.plugins.manager import PluginManager

hookimpl = pluggy.HookimplMarker("halopub")

LOCAL_PLUGIN = """\
import pluggy

hookimpl = pluggy.HookimplMarker("halopub")


class FooterRenderer:
    @hookimpl
    def render_markdown(self, markdown):
        return "<article>" + markdown + "</article>"


class NotAPlugin:
    def render_markdown(self, markdown):
        return "never"
"""

LOCAL_FUNCTION_PLUGIN = """\
import pluggy

hookimpl = pluggy.HookimplMarker("halopub")
seen = []


@hookimpl
def post_pull(site_url, name):
    seen.append((site_url, name))
"""


class UpperRenderer:
    @hookimpl
    def render_markdown(self, markdown: str) -> str:
        return markdown.upper()


class DecliningRenderer:
    @hookimpl
    def render_markdown(self, markdown: str) -> str | None:
        return None


class TestRender:
    def test_no_plugins_falls_back(self) -> None:
        assert PluginManager().render("**hi**") == render_markdown("**hi**")

    def test_commonmark_is_default(self) -> None:
        pm = PluginManager()
        pm.register_builtins()
        assert pm.render("# Title") == render_commonmark("# Title")
        assert pm.list_plugin_names() == [
            "halopub.basic-renderer",
            "halopub.commonmark-renderer",
        ]

    def test_basic_renderer_answers_last(self) -> None:
        pm = PluginManager()
        pm.register_builtins()
        pm.unregister(pm._pm.get_plugin("halopub.commonmark-renderer"))
        assert pm.render("# Title") == render_markdown("# Title")

    def test_custom_renderer_beats_builtins(self) -> None:
        pm = PluginManager()
        pm.register_builtins()
        pm.register_plugin(UpperRenderer())
        assert pm.render("# title") == "# TITLE"

    def test_declining_renderer_falls_through(self) -> None:
        pm = PluginManager()
        pm.register_builtins()
        pm.register_plugin(DecliningRenderer())
        assert pm.render("plain") == render_commonmark("plain")

    def test_unregister(self) -> None:
        pm = PluginManager()
        plugin = UpperRenderer()
        pm.register_plugin(plugin)
        pm.unregister(plugin)
        assert pm.list_plugin_names() == []
        assert pm.render("x") == render_markdown("x")


class TestLocalPlugins:
    def test_loads_hookimpl_classes(self, tmp_path: Path) -> None:
        (tmp_path / "footer.py").write_text(LOCAL_PLUGIN, encoding="utf-8")
        pm = PluginManager()
        pm.register_builtins()
        names = pm.discover_and_load(local_dir=tmp_path)
        assert "halopub_local_plugin_footer.FooterRenderer" in names
        assert not any(name.endswith("NotAPlugin") for name in names)
        assert "halopub_local_plugin_footer" not in names
        assert pm.render("x") == "<article>x</article>"

    def test_module_level_hooks(self, tmp_path: Path) -> None:
        (tmp_path / "audit.py").write_text(LOCAL_FUNCTION_PLUGIN, encoding="utf-8")
        pm = PluginManager()
        names = pm.discover_and_load(local_dir=tmp_path)
        assert "halopub_local_plugin_audit" in names
        pm.hook.post_pull(site_url="https://halo.test", name="p1")
        module = pm._pm.get_plugin("halopub_local_plugin_audit")
        assert module.seen == [("https://halo.test", "p1")]

    def test_skips_private_and_broken_files(self, tmp_path: Path) -> None:
        (tmp_path / "_helpers.py").write_text(LOCAL_PLUGIN, encoding="utf-8")
        (tmp_path / "broken.py").write_text("raise RuntimeError('nope')\n", encoding="utf-8")
        pm = PluginManager()
        names = pm.discover_and_load(local_dir=tmp_path)
        assert not any(name.startswith("halopub_local_plugin_") for name in names)

    def test_missing_directory(self, tmp_path: Path) -> None:
        pm = PluginManager()
        pm.register_builtins()
        names = pm.discover_and_load(local_dir=tmp_path / "absent")
        assert names == ["halopub.basic-renderer", "halopub.commonmark-renderer"]
