"""Metadata resolution — fetch and decode a dataset's ``/info`` record."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from dvidxfer.domain.metadata import DatasetDescriptor, DescriptorError, decode_descriptor
from dvidxfer.infrastructure.node import MalformedResponseError, NodeRequestError
from dvidxfer.services.telemetry import trace_span

if TYPE_CHECKING:
    from dvidxfer.infrastructure.node import NodeClient

logger = logging.getLogger(__name__)


class ResolveError(Exception):
    """Resolution failed; *code* is ``RESOLVE_FAILED`` or ``MALFORMED_DESCRIPTOR``."""

    def __init__(self, code: str, message: str, detail: dict[str, Any]) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.detail = detail


def info_url(node_url: str) -> str:
    return f"{node_url.rstrip('/')}/info"


class MetadataResolver:
    """Resolve data URLs into :class:`DatasetDescriptor` objects.

    One GET per call, no retries, no partial results.
    """

    def __init__(self, client: NodeClient) -> None:
        self._client = client

    def resolve(self, node_url: str) -> DatasetDescriptor:
        """Fetch ``<node_url>/info`` and decode it.

        Raises:
            ResolveError: Transport failure, non-200 status, or a body that
                does not decode into a descriptor.
        """
        url = info_url(node_url)
        with trace_span("resolve") as span:
            try:
                record = self._client.get_json(url, operation="info")
            except MalformedResponseError as exc:
                msg = f"Could not read metadata from {url}: {exc.reason}"
                raise ResolveError("MALFORMED_DESCRIPTOR", msg, exc.to_detail()) from exc
            except NodeRequestError as exc:
                msg = f"Error on getting metadata: {exc}"
                raise ResolveError("RESOLVE_FAILED", msg, exc.to_detail()) from exc

            try:
                descriptor = decode_descriptor(record)
            except DescriptorError as exc:
                msg = f"Error parsing metadata from {url}: {exc}"
                raise ResolveError(
                    "MALFORMED_DESCRIPTOR", msg, {"operation": "info", "url": url}
                ) from exc

            if span is not None:
                span.note = f"{descriptor.type_name} at {url}"

        logger.debug(
            "Resolved %s: type=%s name=%s repo=%s",
            url,
            descriptor.type_name,
            descriptor.name,
            descriptor.repo_uuid,
        )
        return descriptor
