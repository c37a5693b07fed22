"""Markdown renderers that ship with halopub.

CommonMark is the default.  The minimal renderer is registered ``trylast``
so it only answers when every other renderer declines.
"""

from __future__ import annotations

import pluggy

from halopub.infrastructure.markdown import render_commonmark, render_markdown

hookimpl = pluggy.HookimplMarker("halopub")


class CommonMarkRenderer:
    @hookimpl
    def render_markdown(self, markdown: str) -> str:
        return render_commonmark(markdown)


class BasicRenderer:
    """Headings, lists, quotes, code and inline markup only."""

    @hookimpl(trylast=True)
    def render_markdown(self, markdown: str) -> str:
        return render_markdown(markdown)
