"""Shared pytest fixtures and test helpers for dvidxfer tests.

HTTP is faked at the ``requests.Session`` seam: :class:`FakeSession`
serves canned responses per (method, URL), consumes streamed POST bodies,
and records every request in order.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Generator, Iterable
from dataclasses import dataclass, field
from typing import Any

import pytest
from click.testing import CliRunner

from dvidxfer.config.models import TransferConfig
from dvidxfer.infrastructure.node import NodeClient
from dvidxfer.services.telemetry import _current_span, disable_telemetry

SRC = "http://src.example:8000/api/node/3f8c/labels"
DST = "http://dst.example:8000/api/node/a91b/labels"


# ---------------------------------------------------------------------------
# Fake HTTP
# ---------------------------------------------------------------------------


class FakeResponse:
    """Minimal stand-in for ``requests.Response``."""

    def __init__(
        self,
        status_code: int = 200,
        body: bytes = b"",
        *,
        error: Exception | None = None,
    ) -> None:
        self.status_code = status_code
        self._body = body
        self._error = error
        self.closed = False

    @classmethod
    def json_body(cls, payload: Any, status_code: int = 200) -> FakeResponse:
        return cls(status_code, json.dumps(payload).encode())

    def json(self) -> Any:
        return json.loads(self._body)

    def iter_content(self, chunk_size: int = 1) -> Iterable[bytes]:
        for i in range(0, len(self._body), chunk_size):
            yield self._body[i : i + chunk_size]
        if self._error is not None:
            raise self._error

    def close(self) -> None:
        self.closed = True


@dataclass
class RecordedRequest:
    method: str
    url: str
    body: bytes | None = None
    headers: dict[str, str] = field(default_factory=dict)
    stream: bool = False


Responder = FakeResponse | Exception | Callable[[str], FakeResponse]


class FakeSession:
    """In-memory ``requests.Session`` replacement.

    Unknown URLs answer 404. Registered exceptions are raised from the
    call, like a transport failure would be.
    """

    def __init__(self) -> None:
        self.headers: dict[str, str] = {}
        self.requests: list[RecordedRequest] = []
        self.closed = False
        self._routes: dict[tuple[str, str], Responder] = {}
        self._prefixes: list[tuple[str, str, Responder]] = []

    # --- registration -----------------------------------------------

    def on(self, method: str, url: str, responder: Responder) -> None:
        self._routes[(method, url)] = responder

    def on_prefix(self, method: str, prefix: str, responder: Responder) -> None:
        self._prefixes.append((method, prefix, responder))

    def serve_info(self, base_url: str, record: dict[str, Any]) -> None:
        self.on("GET", f"{base_url}/info", FakeResponse.json_body(record))

    # --- requests.Session API -----------------------------------------

    def get(self, url: str, *, stream: bool = False, timeout: float | None = None) -> Any:
        self.requests.append(RecordedRequest("GET", url, stream=stream))
        return self._respond("GET", url)

    def post(
        self,
        url: str,
        *,
        data: Any = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Any:
        body = data if isinstance(data, bytes) or data is None else b"".join(data)
        self.requests.append(RecordedRequest("POST", url, body=body, headers=dict(headers or {})))
        return self._respond("POST", url)

    def close(self) -> None:
        self.closed = True

    # --- inspection ---------------------------------------------------

    def calls(self, method: str | None = None) -> list[RecordedRequest]:
        return [r for r in self.requests if method is None or r.method == method]

    def urls(self, method: str | None = None) -> list[str]:
        return [r.url for r in self.calls(method)]

    def _respond(self, method: str, url: str) -> Any:
        responder = self._routes.get((method, url))
        if responder is None:
            for m, prefix, candidate in self._prefixes:
                if m == method and url.startswith(prefix):
                    responder = candidate
                    break
        if responder is None:
            return FakeResponse(404, b"not found")
        if isinstance(responder, Exception):
            raise responder
        if callable(responder) and not isinstance(responder, FakeResponse):
            return responder(url)
        return responder


def info_record(
    type_name: str,
    *,
    name: str = "labels",
    block_size: list[int] | None = None,
    min_index: list[int] | None = None,
    max_index: list[int] | None = None,
    extended: Any = None,
) -> dict[str, Any]:
    """Build a DVID ``/info`` JSON document."""
    record: dict[str, Any] = {
        "Base": {
            "TypeName": type_name,
            "TypeURL": f"github.com/janelia-flyem/dvid/datatype/{type_name}",
            "TypeVersion": "0.2",
            "Name": name,
            "RepoUUID": "3f8c21",
            "Compression": "LZ4 compression, level -1",
            "Checksum": "No checksum",
            "Persistence": "",
            "Versioned": True,
        },
    }
    if block_size is not None:
        record["Extended"] = {
            "BlockSize": block_size,
            "MinIndex": min_index or [0, 0, 0],
            "MaxIndex": max_index or [0, 0, 0],
        }
    elif extended is not None:
        record["Extended"] = extended
    return record


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _restore_global_state() -> Generator[None]:
    """Undo logging and telemetry changes made by the CLI under test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    xfer = logging.getLogger("dvidxfer")
    xfer_level = xfer.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    xfer.setLevel(xfer_level)
    disable_telemetry()
    _current_span.set(None)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def client(fake_session: FakeSession) -> NodeClient:
    """NodeClient over the fake session, with a small chunk size."""
    return NodeClient(session=fake_session, chunk_size=16)  # type: ignore[arg-type]


@pytest.fixture
def transfer_config() -> TransferConfig:
    return TransferConfig()


@pytest.fixture
def patched_session(fake_session: FakeSession, monkeypatch: pytest.MonkeyPatch) -> FakeSession:
    """Make every ``requests.Session()`` created by the CLI return *fake_session*."""
    monkeypatch.setattr("requests.Session", lambda: fake_session)
    return fake_session
