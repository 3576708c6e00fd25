"""Streaming transfer engine.

Moves planned strips from a source data URL to a destination data URL,
strictly one after another in plan order. Each strip is a single
``GET .../raw/...`` whose body is piped into the matching
``POST .../raw/...``. The first failure stops the run; strips already
written stay written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from dvidxfer.domain.partition import DEFAULT_AXIS_ORDER
from dvidxfer.infrastructure.node import OCTET_STREAM, NodeRequestError
from dvidxfer.services.telemetry import trace_span

if TYPE_CHECKING:
    from dvidxfer.domain.partition import PartitionPlan, StripPlan
    from dvidxfer.infrastructure.node import NodeClient

logger = logging.getLogger(__name__)

RECORD_CONTENT_TYPE = "application/json"
# DVID answers partial ROI reads with 206.
RECORD_READ_STATUSES = (200, 206)


@dataclass(frozen=True)
class TransferSummary:
    strips_transferred: int
    bytes_transferred: int


class TransferError(Exception):
    """A strip or record exchange failed; carries progress up to the failure."""

    def __init__(
        self,
        cause: NodeRequestError,
        *,
        strip_index: int | None,
        strips_completed: int,
        bytes_transferred: int,
    ) -> None:
        super().__init__(str(cause))
        self.cause = cause
        self.strip_index = strip_index
        self.strips_completed = strips_completed
        self.bytes_transferred = bytes_transferred

    @property
    def operation(self) -> str:
        return self.cause.operation

    def to_detail(self) -> dict[str, Any]:
        detail = self.cause.to_detail()
        if self.strip_index is not None:
            detail["strip"] = self.strip_index + 1
        detail["strips_completed"] = self.strips_completed
        detail["bytes_transferred"] = self.bytes_transferred
        return detail


class StreamingTransferEngine:
    """Pipe strips and records between two nodes through one NodeClient."""

    def __init__(self, client: NodeClient, *, axis_order: str = DEFAULT_AXIS_ORDER) -> None:
        self._client = client
        self._axis_order = axis_order

    def strip_urls(self, source_url: str, dest_url: str, strip: StripPlan) -> tuple[str, str]:
        """Return the ``(read_url, write_url)`` pair for *strip*."""
        path = strip.raw_path(self._axis_order)
        return f"{source_url.rstrip('/')}/{path}", f"{dest_url.rstrip('/')}/{path}"

    def transfer_strip(self, source_url: str, dest_url: str, strip: StripPlan) -> int:
        """Move one strip. Returns bytes forwarded.

        Raises:
            NodeRequestError: Read or write failed.
        """
        read_url, write_url = self.strip_urls(source_url, dest_url, strip)
        logger.info("Transferring %s -> %s", read_url, write_url)
        return self._client.pipe(read_url, write_url, content_type=OCTET_STREAM)

    def transfer_plan(
        self, source_url: str, dest_url: str, plan: PartitionPlan
    ) -> TransferSummary:
        """Move every strip of *plan* in order, stopping at the first failure.

        Raises:
            TransferError: A strip failed; no later strip was attempted.
        """
        completed = 0
        total_bytes = 0
        for index, strip in enumerate(plan):
            with trace_span(f"strip[{index}]") as span:
                try:
                    sent = self.transfer_strip(source_url, dest_url, strip)
                except NodeRequestError as exc:
                    logger.error("Strip %d of %d failed: %s", index + 1, len(plan), exc)
                    raise TransferError(
                        exc,
                        strip_index=index,
                        strips_completed=completed,
                        bytes_transferred=total_bytes,
                    ) from exc
                if span is not None:
                    span.note = f"z={strip.z_layer} band={strip.band}"
                    span.credit(strips=1, bytes_moved=sent)
            completed += 1
            total_bytes += sent
        return TransferSummary(strips_transferred=completed, bytes_transferred=total_bytes)

    def copy_record(self, source_url: str, dest_url: str, endpoint: str) -> TransferSummary:
        """Copy a structured record endpoint (e.g. ``roi``) in a single exchange.

        Raises:
            TransferError: Read or write failed.
        """
        read_url = f"{source_url.rstrip('/')}/{endpoint}"
        write_url = f"{dest_url.rstrip('/')}/{endpoint}"
        logger.info("Transferring %s -> %s", read_url, write_url)
        with trace_span(f"record[{endpoint}]") as span:
            try:
                sent = self._client.pipe(
                    read_url,
                    write_url,
                    content_type=RECORD_CONTENT_TYPE,
                    accept=RECORD_READ_STATUSES,
                )
            except NodeRequestError as exc:
                raise TransferError(
                    exc, strip_index=None, strips_completed=0, bytes_transferred=0
                ) from exc
            if span is not None:
                span.credit(strips=1, bytes_moved=sent)
        return TransferSummary(strips_transferred=1, bytes_transferred=sent)
