"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO).  The caller
extracts the rendered text via ``get_output(console)``.

The only operation dvidxfer produces is ``transfer``; warnings are
rendered separately by :func:`render_warnings` for stderr.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from dvidxfer.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from dvidxfer.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        _render_transfer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"
    return f"OK: {result.op}"


def render_warnings(warnings: list[str]) -> str:
    """Render non-fatal warnings, one styled ``WARNING:`` line each."""
    console = create_console()
    for warning in warnings:
        label = Text("WARNING", style="xfer.warning")
        console.print(label, Text(f": {warning}"), sep="", soft_wrap=True)
    return get_output(console).rstrip("\n")


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    label = Text("OK", style="xfer.ok")
    op = Text(f"  {result.op}", style="xfer.op")
    console.print(label, op, sep="")


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="xfer.key")
    if key in ("source", "destination"):
        v = Text(str(value), style="xfer.url")
    elif key.endswith("_type"):
        v = Text(str(value), style="xfer.type")
    elif "bytes" in key:
        v = Text(f"{value:,}" if isinstance(value, int) else str(value), style="xfer.bytes")
    elif isinstance(value, (dict, list)):
        v = Text(_json.dumps(value, separators=(",", ":")))
    else:
        v = Text(str(value))
    console.print(k, v, sep="", soft_wrap=True)


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
            console.print(Text(f"    {k}: {v}"))


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    """One line per span: duration, name, note, and what it moved."""
    duration = span_data.get("duration_ms", 0.0)
    if duration > 60_000:
        style = "bold red"
    elif duration > 5_000:
        style = "yellow"
    else:
        style = "dim"

    line = Text(" " * indent)
    line.append(f"{duration:>10.2f}ms", style=style)
    line.append(f"  {span_data.get('name', '?')}")
    note = span_data.get("note")
    if note:
        line.append(f"  ({note})", style="dim")
    strips = span_data.get("strips")
    if strips:
        moved = span_data.get("bytes", 0)
        line.append(f"  {strips} strip(s), {moved:,} bytes", style="xfer.bytes")
    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="xfer.error")
    op = Text(f"  {result.op}", style="xfer.op")
    console.print(label, op, Text(" — "), Text(msg), sep="")

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(Text(f"    {k}: {v}"))


# ── Transfer renderer ─────────────────────────────────────────────────

_TRANSFER_KEYS = (
    "strategy",
    "source",
    "destination",
    "source_type",
    "destination_type",
    "block_size",
    "min_index",
    "max_index",
    "layers",
    "strips_per_layer",
    "strips_transferred",
    "bytes_transferred",
)


def _strip_table(paths: list[str]) -> Table:
    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("size", no_wrap=True)
    table.add_column("origin", no_wrap=True)
    for i, path in enumerate(paths, start=1):
        # raw/<axis>/<size>/<origin>
        parts = path.split("/")
        table.add_row(str(i), parts[-2], parts[-1])
    return table


def _render_transfer(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render a completed (or planned) transfer."""
    _status_line(console, result)
    d = result.data
    for key in _TRANSFER_KEYS:
        if key in d:
            _field(console, key, d[key])

    if d.get("dry_run"):
        _field(console, "planned_strips", d.get("planned_strips", 0))
        _field(console, "planned_bytes", d.get("planned_bytes", 0))
        strips = d.get("strips", [])
        if strips:
            console.print()
            console.print(_strip_table(strips))

    if verbose:
        for key in ("band_width", "layer_bytes", "bytes_per_voxel", "verified"):
            if key in d:
                _field(console, key, d[key])
        _render_meta(console, result)

