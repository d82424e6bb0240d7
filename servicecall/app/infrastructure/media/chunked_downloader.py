"""Media download over the Transport port, in ranged GETs or one direct GET."""
from __future__ import annotations

import re
from enum import Enum
from typing import Callable

from servicecall.app.constants import DEFAULT_DOWNLOAD_CHUNK_SIZE, HTTP_METHOD
from servicecall.app.domain.error_materializer import ErrorMaterializer
from servicecall.app.domain.errors import ConfigurationError, InvalidStateError
from servicecall.app.domain.headers import HeaderSet
from servicecall.app.ports.sink import BinarySink
from servicecall.app.ports.transport import Transport, TransportResponse

_CONTENT_RANGE = re.compile(r"bytes (\d+)-(\d+)/(\d+|\*)")


class DownloadState(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    MEDIA_IN_PROGRESS = "MEDIA_IN_PROGRESS"
    MEDIA_COMPLETE = "MEDIA_COMPLETE"


class ChunkedDownloader:
    """Downloader implementation.

    Each chunk is requested with ``Range: bytes=a-b`` and written to the sink
    as it arrives; the download ends once the ``Content-Range`` total is
    reached or the server answers without a ``Content-Range``.
    Returns the last (already closed) response; non-success responses raise
    HttpStatusError.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        chunk_size: int = DEFAULT_DOWNLOAD_CHUNK_SIZE,
        direct_download_enabled: bool = False,
        progress_listener: Callable[["ChunkedDownloader"], None] | None = None,
        error_materializer: ErrorMaterializer | None = None,
    ) -> None:
        if chunk_size <= 0:
            raise ConfigurationError("chunk_size must be positive")
        self._transport = transport
        self.chunk_size = chunk_size
        self.direct_download_enabled = direct_download_enabled
        self.progress_listener = progress_listener
        self._error_materializer = error_materializer or ErrorMaterializer()
        self._state = DownloadState.NOT_STARTED
        self._bytes_downloaded = 0
        self._total_length: int | None = None

    @property
    def download_state(self) -> DownloadState:
        return self._state

    @property
    def bytes_downloaded(self) -> int:
        return self._bytes_downloaded

    @property
    def total_length(self) -> int | None:
        return self._total_length

    @property
    def progress(self) -> float | None:
        if self._total_length is None:
            return None
        if self._total_length == 0:
            return 1.0
        return self._bytes_downloaded / self._total_length

    def _set_state(self, state: DownloadState) -> None:
        self._state = state
        if self.progress_listener is not None:
            self.progress_listener(self)

    async def download(self, url: str, headers: HeaderSet, sink: BinarySink) -> TransportResponse:
        if self._state is not DownloadState.NOT_STARTED:
            raise InvalidStateError("this downloader has already been used")

        if self.direct_download_enabled:
            response = await self._get(url, headers, None)
            length = response.headers.content_length
            await response.download(sink)
            self._total_length = length
            if length is not None:
                self._bytes_downloaded = length
            self._set_state(DownloadState.MEDIA_COMPLETE)
            return response

        while True:
            start = self._bytes_downloaded
            end = start + self.chunk_size - 1
            response = await self._get(url, headers, f"bytes={start}-{end}")
            content_range = response.headers.content_range
            await response.download(sink)

            match = _CONTENT_RANGE.match(content_range) if content_range else None
            if match is None:
                self._set_state(DownloadState.MEDIA_COMPLETE)
                return response
            self._bytes_downloaded = int(match.group(2)) + 1
            if match.group(3) != "*":
                self._total_length = int(match.group(3))
            if self._total_length is not None and self._bytes_downloaded >= self._total_length:
                self._set_state(DownloadState.MEDIA_COMPLETE)
                return response
            self._set_state(DownloadState.MEDIA_IN_PROGRESS)

    async def _get(self, url: str, headers: HeaderSet, byte_range: str | None) -> TransportResponse:
        request = self._transport.build_request(HTTP_METHOD.GET, url, None)
        request.throw_exception_on_execute_error = False
        request.headers.put_all(headers)
        if byte_range is not None:
            request.headers.range = byte_range
        response = await request.execute()
        if not response.is_success_status_code():
            raise await self._error_materializer.materialize(response)
        return response
