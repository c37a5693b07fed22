"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO).  The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from halopub.output.console import create_console, get_output, style_for_status

if TYPE_CHECKING:
    from rich.console import Console

    from halopub.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if not result.ok:
        _render_error(result, console, verbose=verbose)
    elif _is_cancelled(result):
        _render_cancelled(result, console, verbose=verbose)
    else:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"
    if _is_cancelled(result):
        return f"CANCELLED: {result.op}"

    # Site listings print one URL per line
    items = result.data.get("items")
    if items and isinstance(items, list):
        return "\n".join(str(item.get("url", "")) for item in items if isinstance(item, dict))

    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _is_cancelled(result: ServiceResult) -> bool:
    return result.data.get("status") == "cancelled"


def _status_line(console: Console, result: ServiceResult) -> None:
    """Print the OK/ERROR status line."""
    label = Text("OK", style="halo.ok")
    op = Text(f"  {result.op}", style="halo.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="halo.key")
    if key in ("id", "name"):
        v = Text(str(value), style="halo.id")
    elif key in ("site", "url", "default_site"):
        v = Text(str(value), style="halo.url")
    elif key == "title":
        v = Text(str(value), style="halo.title")
    elif key == "status":
        v = Text(str(value), style=style_for_status(str(value)))
    elif isinstance(value, list):
        v = Text(", ".join(str(item) for item in value))
    else:
        v = Text(str(value))
    console.print(k, v, end="")
    console.print()


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    """Render a hierarchical span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {name}"
    annotations = span_data.get("annotations") or {}
    if annotations:
        line += "  (" + ", ".join(f"{k}={v}" for k, v in annotations.items()) + ")"
    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


# ── Error / cancelled ─────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="halo.error")
    op = Text(f"  {result.op}", style="halo.op")
    sep = Text(" — ")
    console.print(label, op, sep, msg)

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


def _render_cancelled(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    label = Text("CANCELLED", style="halo.cancelled")
    op = Text(f"  {result.op}", style="halo.op")
    console.print(label, op, Text(" — no site selected"))
    if verbose:
        _render_meta(console, result)


# ── Reconciliation renderers ──────────────────────────────────────────


def _render_publish(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render a completed publish: where it went and what the post looks like now."""
    d = result.data
    _status_line(console, result)
    _field(console, "site", d.get("site_label") or d.get("site", ""))
    _field(console, "name", d.get("name", ""))
    _field(console, "title", d.get("title", ""))
    _field(console, "status", d.get("status", ""))
    if d.get("created"):
        _field(console, "created", "new post")
    for key in ("categories", "tags"):
        if d.get(key):
            _field(console, key, d[key])
    if verbose:
        _field(console, "slug", d.get("slug", ""))
        _render_meta(console, result)


def _render_pull(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    _field(console, "site", d.get("site_label") or d.get("site", ""))
    _field(console, "name", d.get("name", ""))
    _field(console, "title", d.get("title", ""))
    _field(console, "status", "published" if d.get("published") else "draft")
    if not d.get("body_replaced"):
        _field(console, "body", "kept local body (remote body empty)")
    if verbose:
        _render_meta(console, result)


# ── Site renderers ────────────────────────────────────────────────────


def _render_site_list(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render configured sites as a table."""
    items = result.data.get("items", [])
    if not items:
        console.print("No sites configured. Add one with: halopub site add URL TOKEN")
    else:
        table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
        table.add_column("#", justify="right")
        table.add_column("Name", style="halo.title")
        table.add_column("URL", style="halo.url")
        table.add_column("Token")
        table.add_column("Default")
        if verbose:
            table.add_column("ID", style="halo.id", no_wrap=True)
        for index, item in enumerate(items, start=1):
            row = [
                str(index),
                str(item.get("name", "")),
                str(item.get("url", "")),
                str(item.get("token", "")),
                "yes" if item.get("default") else "",
            ]
            if verbose:
                row.append(str(item.get("id", "")))
            table.add_row(*row)
        console.print(table)
        console.print(f"\n{result.data.get('count', len(items))} sites")

    publish = "on" if result.data.get("publish_by_default", True) else "off"
    console.print(f"publish by default: {publish}")


def _render_site_change(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render add/remove/default results."""
    d = result.data
    site = d.get("site") or {}
    _status_line(console, result)
    _field(console, "url", site.get("url", ""))
    if site.get("name"):
        _field(console, "name", site["name"])
    _field(console, "default_site", d.get("default_site") or "-")
    _field(console, "sites", d.get("count", 0))
    if verbose:
        _field(console, "id", site.get("id", ""))
        _render_meta(console, result)


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, dict):
            _field(console, key, _json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    # Reconciliation
    "publish": _render_publish,
    "pull": _render_pull,
    # Sites
    "list_sites": _render_site_list,
    "add_site": _render_site_change,
    "remove_site": _render_site_change,
    "set_default": _render_site_change,
    "set_publish_default": _render_generic,
}
