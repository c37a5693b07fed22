"""Markdown-to-HTML rendering.

:func:`render_commonmark` is the default: CommonMark via markdown-it-py,
plus GFM tables and strikethrough, with raw HTML passed through.
:func:`render_markdown` is the minimal fallback covering ATX headings,
paragraphs, ``-``/``*``/``+`` lists, blockquotes, fenced code, bold,
italic, inline code and links.

Both are deterministic for a given input, which keeps the rendered field
stable across publishes.
"""

from __future__ import annotations

import html
import re
from functools import cache

from markdown_it import MarkdownIt

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*)$")
_LIST_ITEM_RE = re.compile(r"^\s*[-*+]\s+")
_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
_ITALIC_RE = re.compile(r"\*(.+?)\*")
_CODE_RE = re.compile(r"`([^`]+)`")
_LINK_RE = re.compile(r"\[(.+?)\]\((.+?)\)")
_QUOTE_PREFIX_RE = re.compile(r"^>\s?")


def render_inline(text: str) -> str:
    """Escape *text* and apply inline emphasis, code and link markup."""
    out = html.escape(text, quote=True)
    out = _BOLD_RE.sub(r"<strong>\1</strong>", out)
    out = _ITALIC_RE.sub(r"<em>\1</em>", out)
    out = _CODE_RE.sub(r"<code>\1</code>", out)
    return _LINK_RE.sub(r'<a href="\2" target="_blank" rel="noopener noreferrer">\1</a>', out)


def render_markdown(markdown: str) -> str:
    """Render *markdown* to an HTML fragment."""
    parts: list[str] = []
    list_items: list[str] = []
    code_lines: list[str] = []
    code_lang = ""
    in_code = False

    def flush_list() -> None:
        if list_items:
            parts.append("<ul>" + "".join(list_items) + "</ul>")
            list_items.clear()

    for line in markdown.split("\n"):
        if line.startswith("```"):
            if in_code:
                lang = html.escape(code_lang, quote=True)
                code = html.escape("\n".join(code_lines), quote=True)
                parts.append(f'<pre><code class="language-{lang}">{code}</code></pre>')
                code_lines.clear()
                in_code = False
            else:
                flush_list()
                in_code = True
                code_lang = line[3:].strip()
            continue

        if in_code:
            code_lines.append(line)
            continue

        if _LIST_ITEM_RE.match(line):
            list_items.append(f"<li>{render_inline(_LIST_ITEM_RE.sub('', line, count=1))}</li>")
            continue
        flush_list()

        if not line.strip():
            parts.append("<br />")
        elif heading := _HEADING_RE.match(line):
            level = len(heading.group(1))
            parts.append(f"<h{level}>{render_inline(heading.group(2))}</h{level}>")
        elif line.startswith(">"):
            quoted = _QUOTE_PREFIX_RE.sub("", line)
            parts.append(f"<blockquote>{render_inline(quoted)}</blockquote>")
        else:
            parts.append(f"<p>{render_inline(line)}</p>")

    flush_list()
    if in_code and code_lines:
        # Unterminated fence: emit what was collected.
        code = html.escape("\n".join(code_lines), quote=True)
        parts.append(f"<pre><code>{code}</code></pre>")

    return "".join(parts)


@cache
def _commonmark() -> MarkdownIt:
    return MarkdownIt("commonmark", {"html": True}).enable(["table", "strikethrough"])


def render_commonmark(markdown: str) -> str:
    """Render *markdown* with the full CommonMark parser."""
    return _commonmark().render(markdown)
