"""Front-matter codec: a restricted YAML subset plus the document body.

The block between the ``---`` delimiters is read by a small
recursive-descent reader rather than a full YAML library:

- ``key: value`` mapping entries.
- A bare ``key:`` opens a nested mapping, or a sequence when the next
  meaningful line starts with ``-``.  Nothing deeper gives ``{}``.
- ``- value`` sequence items: bare scalars, inline ``key: value`` maps,
  or a bare ``-`` followed by a deeper mapping/sequence.  A bare ``-``
  with nothing deeper is an empty mapping and never opens a sequence.
- ``{}`` and ``[]`` are the only flow collections, read as empty ones.
- Indentation strictly increases to descend; a line at or left of the
  current context pops it.
- Blank lines and ``#`` comment lines are skipped.

Anchors, other flow collections, multi-line scalars and multi-document
streams are not supported.

Keys are written verbatim and never quoted.  A key containing ``": "`` or
a leading ``#``, ``- `` or quote does not survive a round trip; front
matter keys are expected to be plain identifiers.

INVARIANT: ``parse_document(serialize_document(fm, body))`` reproduces
``fm`` and ``body`` for front matter built from supported shapes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

type Value = str | int | float | bool | None | list[Value] | dict[str, Value]

DELIMITER = "---"

_NUMBER_RE = re.compile(r"^[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?$")
_INLINE_ENTRY_RE = re.compile(r"^([^:'\"]+?):(?:\s+(.*))?$")
_RESERVED_WORDS = frozenset({"true", "false", "null"})
_QUOTE_TRIGGERS = (":", "#", "- ", '"', "'", "\n", "\t", "\\")
_LEADING_INDICATORS = frozenset("-[]{}&*!|>%@`,?")


@dataclass(frozen=True)
class Document:
    """A parsed Markdown document.

    ``has_front_matter`` is False both when the text has no opening
    delimiter and when the block is never closed; in both cases the whole
    text is the body.
    """

    front_matter: dict[str, Value] = field(default_factory=dict)
    body: str = ""
    has_front_matter: bool = False


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_document(text: str) -> Document:
    """Split *text* into front matter and body.

    Never raises for malformed input: a missing or unterminated block falls
    back to ``Document(body=text)``.
    """
    if not text.startswith(DELIMITER + "\n"):
        return Document(body=text)

    lines = text.split("\n")
    end_idx: int | None = None
    for i, line in enumerate(lines[1:], start=1):
        if line.strip() == DELIMITER:
            end_idx = i
            break

    if end_idx is None:
        return Document(body=text)

    front_matter = parse_block("\n".join(lines[1:end_idx]))
    body = "\n".join(lines[end_idx + 1 :])

    # Drop the blank separator line written by serialize_document().
    if body.startswith("\n"):
        body = body[1:]

    return Document(front_matter=front_matter, body=body, has_front_matter=True)


def parse_block(text: str) -> dict[str, Value]:
    """Parse the restricted YAML subset between the delimiters."""
    return _BlockReader(text).read()


def coerce_scalar(raw: str) -> Value:
    """Coerce a scalar: keywords, then numbers, then quoted strings, else raw.

    The flow forms ``{}`` and ``[]`` give an empty mapping and sequence.
    """
    if raw == "{}":
        return {}
    if raw == "[]":
        return []
    if raw == "true":
        return True
    if raw == "false":
        return False
    if raw == "null":
        return None
    if _NUMBER_RE.match(raw):
        if any(ch in raw for ch in ".eE"):
            return float(raw)
        return int(raw)
    if len(raw) >= 2 and raw[0] == raw[-1] == '"':
        return _unescape_double(raw[1:-1])
    if len(raw) >= 2 and raw[0] == raw[-1] == "'":
        return raw[1:-1].replace("''", "'")
    return raw


def _unescape_double(inner: str) -> str:
    out: list[str] = []
    i = 0
    while i < len(inner):
        ch = inner[i]
        if ch == "\\" and i + 1 < len(inner):
            nxt = inner[i + 1]
            out.append({"n": "\n", "t": "\t"}.get(nxt, nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


@dataclass(frozen=True)
class _Line:
    indent: int
    text: str

    @property
    def is_item(self) -> bool:
        return self.text == "-" or self.text.startswith("- ")


class _BlockReader:
    """Recursive-descent reader over the meaningful lines of a block."""

    def __init__(self, text: str) -> None:
        self._lines: list[_Line] = []
        for raw in text.split("\n"):
            stripped = raw.strip()
            if not stripped or stripped.startswith("#"):
                continue
            self._lines.append(_Line(len(raw) - len(raw.lstrip()), stripped))
        self._pos = 0

    def read(self) -> dict[str, Value]:
        return self._read_mapping(-1)

    def _peek(self) -> _Line | None:
        if self._pos < len(self._lines):
            return self._lines[self._pos]
        return None

    def _read_mapping(self, context: int) -> dict[str, Value]:
        result: dict[str, Value] = {}
        while (line := self._peek()) is not None and line.indent > context:
            self._pos += 1
            if line.is_item:
                # Stray sequence item inside a mapping.
                continue
            key, sep, rest = line.text.partition(":")
            key = key.strip()
            if not sep or not key:
                continue
            rest = rest.strip()
            if rest:
                result[key] = coerce_scalar(rest)
            else:
                result[key] = self._read_nested(line.indent)
        return result

    def _read_nested(self, key_indent: int, *, from_item: bool = False) -> Value:
        nxt = self._peek()
        if nxt is None:
            return {}
        if nxt.indent > key_indent:
            if nxt.is_item:
                return self._read_sequence(key_indent)
            return self._read_mapping(key_indent)
        # Below a bare dash, an item at the same column is the next sibling.
        if not from_item and nxt.indent == key_indent and nxt.is_item:
            # Indentless sequence: items share the key's column.
            return self._read_sequence(key_indent - 1, column=key_indent)
        return {}

    def _read_sequence(self, context: int, *, column: int | None = None) -> list[Value]:
        items: list[Value] = []
        while (line := self._peek()) is not None and line.indent > context:
            if column is not None and (line.indent != column or not line.is_item):
                break
            self._pos += 1
            if not line.is_item:
                continue
            value_text = line.text[1:].strip()
            if not value_text:
                items.append(self._read_nested(line.indent, from_item=True))
                continue
            match = _INLINE_ENTRY_RE.match(value_text)
            if match and match.group(1).strip():
                entry: dict[str, Value] = {}
                key = match.group(1).strip()
                rest = (match.group(2) or "").strip()
                if rest:
                    entry[key] = coerce_scalar(rest)
                else:
                    key_column = line.indent + len(line.text) - len(value_text)
                    entry[key] = self._read_nested(key_column)
                # Further keys of the same item sit deeper than the dash.
                entry.update(self._read_mapping(line.indent))
                items.append(entry)
            else:
                items.append(coerce_scalar(value_text))
        return items


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def serialize_document(front_matter: dict[str, Value], body: str) -> str:
    """Render *front_matter* and *body* back into document text."""
    block = serialize_block(front_matter)
    return f"{DELIMITER}\n{block}\n{DELIMITER}\n\n" + body.lstrip("\n")


def serialize_block(mapping: dict[str, Value], indent: int = 0) -> str:
    """Emit a mapping in insertion order, skipping empty values."""
    return "\n".join(_mapping_lines(mapping, indent))


def _is_empty(value: Value) -> bool:
    return value is None or value == "" or (isinstance(value, list) and not value)


def _mapping_lines(mapping: dict[str, Value], indent: int) -> list[str]:
    lines: list[str] = []
    prefix = " " * indent
    for key, value in mapping.items():
        if _is_empty(value):
            continue
        if isinstance(value, list):
            lines.append(f"{prefix}{key}:")
            lines.extend(_sequence_lines(value, indent + 2))
        elif isinstance(value, dict) and not value:
            lines.append(f"{prefix}{key}: {{}}")
        elif isinstance(value, dict):
            lines.append(f"{prefix}{key}:")
            lines.extend(_mapping_lines(value, indent + 2))
        else:
            lines.append(f"{prefix}{key}: {format_scalar(value)}")
    return lines


def _sequence_lines(items: list[Value], indent: int) -> list[str]:
    lines: list[str] = []
    prefix = " " * indent
    for item in items:
        if isinstance(item, (dict, list)) and not item:
            lines.append(f"{prefix}- {'{}' if isinstance(item, dict) else '[]'}")
        elif isinstance(item, dict):
            lines.append(f"{prefix}-")
            lines.extend(_mapping_lines(item, indent + 2))
        elif isinstance(item, list):
            lines.append(f"{prefix}-")
            lines.extend(_sequence_lines(item, indent + 2))
        else:
            lines.append(f"{prefix}- {format_scalar(item)}")
    return lines


def format_scalar(value: Value) -> str:
    """Format a scalar for emission, quoting only when required."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if value is None:
        return "null"
    if isinstance(value, str):
        if _needs_quotes(value):
            escaped = (
                value.replace("\\", "\\\\")
                .replace('"', '\\"')
                .replace("\n", "\\n")
                .replace("\t", "\\t")
            )
            return f'"{escaped}"'
        return value
    msg = f"Unsupported front-matter scalar: {type(value).__name__}"
    raise TypeError(msg)


def _needs_quotes(text: str) -> bool:
    if not text or text != text.strip():
        return True
    if any(trigger in text for trigger in _QUOTE_TRIGGERS):
        return True
    # Strings that would otherwise read back as another type.
    if text in _RESERVED_WORDS or _NUMBER_RE.match(text):
        return True
    # YAML indicator characters; quoted so other YAML readers agree.
    return text[0] in _LEADING_INDICATORS
