"""Transport port: contract for building and executing HTTP requests.

The request engine depends on this port; infrastructure (e.g. httpx)
implements it. Transport implementations raise TransportError (or
TransportTimeoutError) from servicecall.app.domain.errors when the call
itself fails, independent of the HTTP status.
"""
from __future__ import annotations

from typing import Any, AsyncIterator, Protocol, runtime_checkable

from servicecall.app.domain.content import HttpContent
from servicecall.app.domain.headers import HeaderSet
from servicecall.app.ports.object_codec import ObjectCodec
from servicecall.app.ports.sink import BinarySink


@runtime_checkable
class TransportResponse(Protocol):
    """Response with a still-open body stream. Owners must ``aclose()`` it."""

    @property
    def status_code(self) -> int: ...

    @property
    def status_message(self) -> str | None: ...

    @property
    def headers(self) -> HeaderSet: ...

    @property
    def request(self) -> "TransportRequest": ...

    def is_success_status_code(self) -> bool: ...

    def aiter_bytes(self) -> AsyncIterator[bytes]: ...

    async def read(self) -> bytes: ...

    async def parse_as(self, data_type: Any) -> Any:
        """Decode the body with the originating request's parser, then close. An empty body yields None."""
        ...

    async def ignore(self) -> None:
        """Drain and close the body without decoding it."""
        ...

    async def download(self, sink: BinarySink) -> None:
        """Write the body into ``sink``, then close."""
        ...

    async def aclose(self) -> None: ...


@runtime_checkable
class TransportRequest(Protocol):
    """A built, not yet executed, request. Mutable until ``execute`` is awaited."""

    method: str
    url: str
    headers: HeaderSet
    content: HttpContent | None
    parser: ObjectCodec | None
    enable_gzip_content: bool
    throw_exception_on_execute_error: bool

    async def execute(self) -> TransportResponse:
        """Send the request.

        When ``throw_exception_on_execute_error`` is set, a non-success status
        raises HttpStatusError after the body has been read and closed.
        """
        ...


@runtime_checkable
class Transport(Protocol):
    """Port: builds requests. Implementations live in infrastructure."""

    def build_request(self, method: str, url: str, content: HttpContent | None) -> TransportRequest: ...

    def supports_method(self, method: str) -> bool: ...

    async def close(self) -> None:
        """Release resources (e.g. connection pool). No-op allowed if nothing to close."""
        ...
