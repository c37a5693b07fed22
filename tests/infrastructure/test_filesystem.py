"""Tests for the file-backed document editor."""

from __future__ import annotations

from pathlib import Path

from halopub.infrastructure.filesystem import FileEditor


class TestFileEditor:
    def test_get_value(self, tmp_path: Path) -> None:
        path = tmp_path / "post.md"
        path.write_text("# Hello\n", encoding="utf-8")
        assert FileEditor(path).get_value() == "# Hello\n"

    def test_crlf_normalized(self, tmp_path: Path) -> None:
        path = tmp_path / "post.md"
        path.write_bytes(b"---\r\ntitle: x\r\n---\r\n\r\nBody\r\n")
        assert FileEditor(path).get_value() == "---\ntitle: x\n---\n\nBody\n"

    def test_set_value_writes_lf(self, tmp_path: Path) -> None:
        path = tmp_path / "post.md"
        path.write_text("old", encoding="utf-8")
        FileEditor(path).set_value("line one\nline two\n")
        assert path.read_bytes() == b"line one\nline two\n"

    def test_unicode_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "post.md"
        editor = FileEditor(path)
        editor.set_value("标题 — émoji 🎉\n")
        assert editor.get_value() == "标题 — émoji 🎉\n"
