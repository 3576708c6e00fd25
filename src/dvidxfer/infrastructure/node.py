"""HTTP access to DVID nodes.

All network traffic goes through :class:`NodeClient`, which owns one
``requests.Session``. Bodies are never materialized: :meth:`NodeClient.pipe`
hands the streamed GET body straight to the POST as a chunked upload, so
memory use stays at one chunk regardless of payload size.

Failures raise :class:`NodeRequestError` naming the operation (``info``,
``read`` or ``write``), the URL and the status or transport cause.
Nothing here retries.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

import requests

logger = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"


class NodeRequestError(Exception):
    """A request to a node failed at the transport or HTTP level."""

    def __init__(
        self,
        operation: str,
        url: str,
        *,
        status: int | None = None,
        reason: str = "",
    ) -> None:
        self.operation = operation
        self.url = url
        self.status = status
        self.reason = reason
        if status is not None and not reason:
            message = f"Bad status on {operation} {url}: {status}"
        elif status is not None:
            message = f"Bad status on {operation} {url}: {status} ({reason})"
        else:
            message = f"{operation.capitalize()} error on {url}: {reason}"
        super().__init__(message)

    def to_detail(self) -> dict[str, Any]:
        detail: dict[str, Any] = {"operation": self.operation, "url": self.url}
        if self.status is not None:
            detail["status"] = self.status
        if self.reason:
            detail["reason"] = self.reason
        return detail


class MalformedResponseError(NodeRequestError):
    """The node answered 200 but the body could not be decoded."""


class _BodyPipe:
    """Iterable request body that forwards a streamed response chunk by chunk.

    Records read-side failures so the caller can tell a broken source
    stream apart from a failed upload; requests re-wraps exceptions raised
    while sending the body as ``ConnectionError``.
    """

    def __init__(self, response: requests.Response, chunk_size: int) -> None:
        self._response = response
        self._chunk_size = chunk_size
        self.bytes_sent = 0
        self.read_error: Exception | None = None

    def __iter__(self) -> Iterator[bytes]:
        try:
            for chunk in self._response.iter_content(chunk_size=self._chunk_size):
                if chunk:
                    self.bytes_sent += len(chunk)
                    yield chunk
        except (requests.RequestException, OSError) as exc:
            self.read_error = exc
            raise


class NodeClient:
    """Synchronous HTTP client for one transfer invocation.

    Usage::

        with NodeClient(timeout=None) as client:
            record = client.get_json("http://host/api/node/abc/labels/info")
            sent = client.pipe(src_raw_url, dst_raw_url)
    """

    def __init__(
        self,
        *,
        timeout: float | None = None,
        user_agent: str | None = None,
        chunk_size: int = 1 << 20,
        session: requests.Session | None = None,
    ) -> None:
        self._session = session if session is not None else requests.Session()
        if user_agent:
            self._session.headers["User-Agent"] = user_agent
        self._timeout = timeout
        self._chunk_size = chunk_size

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> NodeClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def get_json(self, url: str, *, operation: str = "info") -> Any:
        """GET *url* and decode its JSON body. Only 200 counts as success."""
        logger.debug("GET %s", url)
        try:
            resp = self._session.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            raise NodeRequestError(operation, url, reason=str(exc)) from exc

        try:
            if resp.status_code != requests.codes.ok:
                raise NodeRequestError(operation, url, status=resp.status_code)
            try:
                return resp.json()
            except ValueError as exc:
                raise MalformedResponseError(
                    operation, url, reason=f"response is not valid JSON: {exc}"
                ) from exc
        finally:
            resp.close()

    def pipe(
        self,
        source_url: str,
        dest_url: str,
        *,
        content_type: str = OCTET_STREAM,
        accept: tuple[int, ...] = (200,),
    ) -> int:
        """Stream the body of ``GET source_url`` into ``POST dest_url``.

        *accept* lists the read statuses treated as success; the write
        must answer 200. Returns the number of bytes forwarded.
        """
        logger.debug("GET %s (stream)", source_url)
        try:
            source = self._session.get(source_url, stream=True, timeout=self._timeout)
        except requests.RequestException as exc:
            raise NodeRequestError("read", source_url, reason=str(exc)) from exc

        try:
            if source.status_code not in accept:
                raise NodeRequestError("read", source_url, status=source.status_code)

            body = _BodyPipe(source, self._chunk_size)
            logger.debug("POST %s (chunked)", dest_url)
            try:
                resp = self._session.post(
                    dest_url,
                    data=body,
                    headers={"Content-Type": content_type},
                    timeout=self._timeout,
                )
            except (requests.RequestException, OSError) as exc:
                if body.read_error is not None:
                    raise NodeRequestError(
                        "read", source_url, reason=str(body.read_error)
                    ) from exc
                raise NodeRequestError("write", dest_url, reason=str(exc)) from exc

            try:
                if resp.status_code != requests.codes.ok:
                    raise NodeRequestError("write", dest_url, status=resp.status_code)
            finally:
                resp.close()
            return body.bytes_sent
        finally:
            source.close()
