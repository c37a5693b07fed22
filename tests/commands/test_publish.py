"""Tests for the ``publish`` command."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from halopub.cli import cli
from halopub.commands._context import AppContext
from halopub.domain.frontmatter import parse_document
from halopub.domain.posts import PATCHED_CONTENT_ANNOTATION

TOKEN = "pat_secret_token_1234"


def add_site(runner: CliRunner, url: str, *extra: str) -> None:
    result = runner.invoke(cli, ["site", "add", url, TOKEN, *extra])
    assert result.exit_code == 0, result.output


@pytest.fixture
def document(workspace: Path) -> Path:
    path = workspace / "post.md"
    path.write_text("# Hello Halo\n\nFirst paragraph.\n", encoding="utf-8")
    return path


class TestPublish:
    def test_creates_post_and_links_document(
        self, cli_runner: CliRunner, document: Path, fake_halo: Any
    ) -> None:
        add_site(cli_runner, "https://halo.test", "--name", "main")
        result = cli_runner.invoke(cli, ["publish", str(document)])
        assert result.exit_code == 0, result.output
        assert "publish" in result.output
        assert "Hello Halo" in result.output

        assert len(fake_halo.posts) == 1
        name = next(iter(fake_halo.posts))
        doc = parse_document(document.read_text(encoding="utf-8"))
        assert doc.front_matter["title"] == "Hello Halo"
        assert doc.front_matter["remote"] == {
            "site": "https://halo.test",
            "name": name,
            "publish": True,
        }
        assert doc.body == "# Hello Halo\n\nFirst paragraph.\n"

    def test_json_output(self, cli_runner: CliRunner, document: Path) -> None:
        add_site(cli_runner, "https://halo.test")
        result = cli_runner.invoke(cli, ["--json", "publish", str(document)])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["ok"] is True
        assert data["op"] == "publish"
        assert data["data"]["status"] == "published"
        assert data["data"]["created"] is True

    def test_republish_updates_same_post(
        self, cli_runner: CliRunner, document: Path, fake_halo: Any
    ) -> None:
        add_site(cli_runner, "https://halo.test")
        cli_runner.invoke(cli, ["publish", str(document)])
        result = cli_runner.invoke(cli, ["--json", "publish", str(document)])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["data"]["created"] is False
        assert len(fake_halo.posts) == 1

    def test_no_sites(self, cli_runner: CliRunner, document: Path) -> None:
        result = cli_runner.invoke(cli, ["--json", "publish", str(document)])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["ok"] is False
        assert data["error"]["code"] == "NO_SITES"
        assert "remote" not in document.read_text(encoding="utf-8")

    def test_missing_file(self, cli_runner: CliRunner, workspace: Path) -> None:
        result = cli_runner.invoke(cli, ["publish", str(workspace / "missing.md")])
        assert result.exit_code == 2

    def test_default_flag(self, cli_runner: CliRunner, document: Path) -> None:
        add_site(cli_runner, "https://a.test")
        add_site(cli_runner, "https://b.test", "--default")
        result = cli_runner.invoke(cli, ["--json", "publish", "--default", str(document)])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["data"]["site"] == "https://b.test"

    def test_verbose_shows_telemetry(self, cli_runner: CliRunner, document: Path) -> None:
        add_site(cli_runner, "https://halo.test")
        result = cli_runner.invoke(cli, ["-v", "publish", str(document)])
        assert result.exit_code == 0, result.output
        assert "meta:" in result.output
        assert "write_post" in result.output


class TestSitePrompt:
    @pytest.fixture(autouse=True)
    def _interactive(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(AppContext, "is_interactive", property(lambda self: True))

    def test_choose_second_site(self, cli_runner: CliRunner, document: Path) -> None:
        add_site(cli_runner, "https://a.test", "--name", "alpha")
        add_site(cli_runner, "https://b.test", "--name", "beta")
        result = cli_runner.invoke(cli, ["publish", str(document)], input="2\n")
        assert result.exit_code == 0, result.output
        assert "1. alpha (default)" in result.output
        assert "2. beta" in result.output
        doc = parse_document(document.read_text(encoding="utf-8"))
        assert doc.front_matter["remote"]["site"] == "https://b.test"

    def test_invalid_number_cancels(
        self, cli_runner: CliRunner, document: Path, fake_halo: Any
    ) -> None:
        add_site(cli_runner, "https://a.test")
        add_site(cli_runner, "https://b.test")
        original = document.read_text(encoding="utf-8")
        result = cli_runner.invoke(cli, ["publish", str(document)], input="9\n")
        assert result.exit_code == 0, result.output
        assert "Invalid site number" in result.output
        assert "CANCELLED" in result.output
        assert fake_halo.writes == []
        assert document.read_text(encoding="utf-8") == original


class TestLocalRendererPlugin:
    def test_plugin_overrides_builtin_renderer(
        self, cli_runner: CliRunner, document: Path, workspace: Path, fake_halo: Any
    ) -> None:
        plugins = workspace / ".halopub" / "plugins"
        plugins.mkdir(parents=True)
        (plugins / "shout.py").write_text(
            "import pluggy\n"
            "\n"
            'hookimpl = pluggy.HookimplMarker("halopub")\n'
            "\n"
            "\n"
            "class ShoutRenderer:\n"
            "    @hookimpl\n"
            "    def render_markdown(self, markdown):\n"
            '        return "<p>" + markdown.upper() + "</p>"\n',
            encoding="utf-8",
        )
        add_site(cli_runner, "https://halo.test")
        result = cli_runner.invoke(cli, ["publish", str(document)])
        assert result.exit_code == 0, result.output

        name = next(iter(fake_halo.posts))
        annotations = fake_halo.drafts[name]["metadata"]["annotations"]
        assert annotations[PATCHED_CONTENT_ANNOTATION] == (
            "<p># HELLO HALO\n\nFIRST PARAGRAPH.\n</p>"
        )
