"""Concrete transport implementation using httpx (injected where Transport is needed)."""
from __future__ import annotations

import gzip
from typing import Any, AsyncIterator, Callable

import httpx

from servicecall.app.constants import HEADER
from servicecall.app.domain.content import HttpContent
from servicecall.app.domain.error_materializer import ErrorMaterializer
from servicecall.app.domain.errors import InvalidStateError, TransportError, TransportTimeoutError
from servicecall.app.domain.headers import HeaderSet
from servicecall.app.ports.object_codec import ObjectCodec
from servicecall.app.ports.sink import BinarySink, write_to_sink
from servicecall.app.ports.transport import Transport, TransportRequest, TransportResponse

RequestInitializer = Callable[[TransportRequest], None]

_HTTPX_METHODS = frozenset({"GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"})


class HttpxTransportResponse:
    """Adapts a streamed httpx.Response to the TransportResponse protocol."""

    def __init__(self, response: httpx.Response, request: "HttpxTransportRequest") -> None:
        self._response = response
        self._request = request
        self._headers = HeaderSet(response.headers.multi_items())

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def status_message(self) -> str | None:
        return self._response.reason_phrase or None

    @property
    def headers(self) -> HeaderSet:
        return self._headers

    @property
    def request(self) -> "HttpxTransportRequest":
        return self._request

    def is_success_status_code(self) -> bool:
        return self._response.is_success

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.aiter_bytes():
                yield chunk
        except httpx.TimeoutException as exc:
            raise TransportTimeoutError(f"timeout while reading {self._request.url}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"reading response from {self._request.url} failed: {exc}") from exc

    async def read(self) -> bytes:
        try:
            return await self._response.aread()
        except httpx.TimeoutException as exc:
            raise TransportTimeoutError(f"timeout while reading {self._request.url}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"reading response from {self._request.url} failed: {exc}") from exc

    async def parse_as(self, data_type: Any) -> Any:
        parser = self._request.parser
        if parser is None:
            raise InvalidStateError("no parser bound to the request of this response")
        try:
            body = await self.read()
        finally:
            await self.aclose()
        # 204, 304 and HEAD responses carry no message body.
        if not body:
            return None
        return parser.decode(body, data_type)

    async def ignore(self) -> None:
        try:
            await self.read()
        finally:
            await self.aclose()

    async def download(self, sink: BinarySink) -> None:
        try:
            async for chunk in self.aiter_bytes():
                await write_to_sink(sink, chunk)
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        await self._response.aclose()


class HttpxTransportRequest:
    """A request that is built eagerly but only sent on ``execute``."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        content: HttpContent | None,
        *,
        timeout: httpx.Timeout | None = None,
    ) -> None:
        self._client = client
        self._timeout = timeout
        self.method = method
        self.url = url
        self.content = content
        self.headers = HeaderSet()
        self.parser: ObjectCodec | None = None
        self.enable_gzip_content = False
        self.throw_exception_on_execute_error = True

    def _body(self) -> bytes | None:
        if self.content is None:
            return None
        body = self.content.read()
        if self.enable_gzip_content and body:
            body = gzip.compress(body)
            self.headers.content_encoding = "gzip"
            self.headers.content_length = len(body)
        elif self.content.length < 0:
            self.headers.content_length = len(body)
        return body

    async def execute(self) -> TransportResponse:
        body = self._body()
        request = self._client.build_request(
            self.method,
            self.url,
            content=body,
            headers=self.headers.multi_items(),
            timeout=self._timeout if self._timeout is not None else httpx.USE_CLIENT_DEFAULT,
        )
        try:
            raw = await self._client.send(request, stream=True)
        except httpx.TimeoutException as exc:
            raise TransportTimeoutError(f"timeout while calling {self.method} {self.url}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{self.method} {self.url} failed: {exc}") from exc

        response = HttpxTransportResponse(raw, self)
        if self.throw_exception_on_execute_error and not response.is_success_status_code():
            raise await ErrorMaterializer().materialize(response)
        return response


class HttpxTransport(Transport):
    """Transport implementation using httpx.AsyncClient."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        timeout: httpx.Timeout | None = None,
        initializer: RequestInitializer | None = None,
        supported_methods: frozenset[str] = _HTTPX_METHODS,
    ) -> None:
        self._client = client
        self._timeout = timeout
        self._initializer = initializer
        self._supported_methods = supported_methods

    def build_request(self, method: str, url: str, content: HttpContent | None) -> TransportRequest:
        request = HttpxTransportRequest(self._client, method, url, content, timeout=self._timeout)
        if self._initializer is not None:
            self._initializer(request)
        return request

    def supports_method(self, method: str) -> bool:
        return method.upper() in self._supported_methods

    async def close(self) -> None:
        await self._client.aclose()
