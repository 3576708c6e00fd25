"""Transfer telemetry: timed spans that also count strips and bytes moved.

Off unless ``--verbose`` turns it on. When on, :func:`traced` opens a root
span around a service call, :func:`trace_span` nests stage spans under it
(resolve, plan, one per strip), and the finished tree is attached to
``ServiceResult.meta["telemetry"]``. Bytes and strips credited to a span
roll up into every ancestor, so the root span carries the run totals.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from dvidxfer.services.result import ServiceResult

_enabled: ContextVar[bool] = ContextVar("dvidxfer_telemetry", default=False)
_current_span: ContextVar[Span | None] = ContextVar("dvidxfer_span", default=None)

_log = structlog.get_logger("dvidxfer.telemetry")


@dataclass
class Span:
    """One timed stage of a transfer."""

    name: str
    parent: Span | None = None
    children: list[Span] = field(default_factory=list)
    started: float = field(default_factory=time.perf_counter)
    ended: float | None = None
    note: str = ""
    strips: int = 0
    bytes_moved: int = 0

    @property
    def duration_ms(self) -> float:
        if self.ended is None:
            return 0.0
        return (self.ended - self.started) * 1000

    def credit(self, *, strips: int = 0, bytes_moved: int = 0) -> None:
        """Add moved strips/bytes to this span and all of its ancestors."""
        span: Span | None = self
        while span is not None:
            span.strips += strips
            span.bytes_moved += bytes_moved
            span = span.parent

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.note:
            out["note"] = self.note
        if self.strips:
            out["strips"] = self.strips
            out["bytes"] = self.bytes_moved
        if self.children:
            out["children"] = [c.to_dict() for c in self.children]
        return out


@contextmanager
def trace_span(name: str) -> Generator[Span | None]:
    """Open a child of the current span; yields None when telemetry is off."""
    parent = _current_span.get() if _enabled.get() else None
    if parent is None:
        yield None
        return

    span = Span(name=name, parent=parent)
    parent.children.append(span)
    token = _current_span.set(span)
    try:
        yield span
    finally:
        span.ended = time.perf_counter()
        _current_span.reset(token)


_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Wrap a service method in a root span and attach the tree to its result."""

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _enabled.get():
            return func(*args, **kwargs)

        root = Span(name=func.__qualname__)
        token = _current_span.set(root)
        ok = False
        try:
            result = func(*args, **kwargs)
            ok = result.ok if isinstance(result, ServiceResult) else True
        finally:
            root.ended = time.perf_counter()
            _current_span.reset(token)
            _log.debug(
                "span.complete",
                span_name=root.name,
                duration_ms=round(root.duration_ms, 2),
                ok=ok,
                strips=root.strips,
                bytes=root.bytes_moved,
            )

        if isinstance(result, ServiceResult):
            meta = {**(result.meta or {}), "telemetry": root.to_dict()}
            return result.model_copy(update={"meta": meta})  # type: ignore[return-value]
        return result

    return wrapper


def enable_telemetry() -> None:
    _enabled.set(True)


def disable_telemetry() -> None:
    _enabled.set(False)
