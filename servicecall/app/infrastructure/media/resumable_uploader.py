"""Resumable media upload over the Transport port.

Protocol: an initiation request (the API method's verb, the metadata as body,
``X-Upload-Content-Type``/``X-Upload-Content-Length`` describing the media)
returns a session URI in ``Location``. Media then goes out in ``PUT`` chunks
carrying ``Content-Range``; the server answers 308 with a ``Range`` header
for every chunk it persisted until the last one, which gets the API
method's final response.
"""
from __future__ import annotations

import re
from enum import Enum
from typing import Any, Callable

from loguru import logger

from servicecall.app.constants import (
    DEFAULT_UPLOAD_CHUNK_SIZE,
    HEADER,
    HTTP_METHOD,
    RESUME_INCOMPLETE_STATUS,
    UPLOAD_CHUNK_GRANULARITY,
)
from servicecall.app.core import SERVICE_NAME
from servicecall.app.domain.content import ByteArrayContent, EmptyContent, HttpContent, InputStreamContent
from servicecall.app.domain.errors import ConfigurationError, InvalidStateError, TransportError
from servicecall.app.domain.headers import HeaderSet
from servicecall.app.ports.transport import Transport, TransportResponse

_RANGE_END = re.compile(r"bytes=\d+-(\d+)")


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class UploadState(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    INITIATION_STARTED = "INITIATION_STARTED"
    INITIATION_COMPLETE = "INITIATION_COMPLETE"
    MEDIA_IN_PROGRESS = "MEDIA_IN_PROGRESS"
    MEDIA_COMPLETE = "MEDIA_COMPLETE"


def with_upload_type(url: str, upload_type: str = "resumable") -> str:
    joiner = "&" if "?" in url else "?"
    return f"{url}{joiner}uploadType={upload_type}"


class ResumableUploader:
    """Uploader implementation. One instance uploads its media content once."""

    def __init__(
        self,
        media_content: InputStreamContent,
        transport: Transport,
        *,
        chunk_size: int = DEFAULT_UPLOAD_CHUNK_SIZE,
        progress_listener: Callable[["ResumableUploader"], None] | None = None,
    ) -> None:
        if chunk_size <= 0 or chunk_size % UPLOAD_CHUNK_GRANULARITY:
            raise ConfigurationError(f"chunk_size must be a positive multiple of {UPLOAD_CHUNK_GRANULARITY}")
        self._media = media_content
        self._transport = transport
        self.chunk_size = chunk_size
        self.progress_listener = progress_listener
        self.initiation_method = HTTP_METHOD.POST
        self.metadata: HttpContent | None = None
        self.initiation_headers = HeaderSet()
        self._state = UploadState.NOT_STARTED
        self._bytes_uploaded = 0
        self._buffer = bytearray()
        self._media_exhausted = False

    @property
    def media_content(self) -> InputStreamContent:
        return self._media

    @property
    def upload_state(self) -> UploadState:
        return self._state

    @property
    def bytes_uploaded(self) -> int:
        return self._bytes_uploaded

    @property
    def progress(self) -> float | None:
        """Fraction uploaded, or None while the media length is unknown."""
        if self._media.length < 0:
            return None
        if self._media.length == 0:
            return 1.0
        return self._bytes_uploaded / self._media.length

    def _set_state(self, state: UploadState) -> None:
        self._state = state
        if self.progress_listener is not None:
            self.progress_listener(self)

    async def upload(self, url: str) -> TransportResponse:
        if self._state is not UploadState.NOT_STARTED:
            raise InvalidStateError("this uploader has already been used")

        self._set_state(UploadState.INITIATION_STARTED)
        response = await self._initiate(with_upload_type(url))
        if not response.is_success_status_code():
            return response
        location = response.headers.location
        await response.aclose()
        if not location:
            raise TransportError("resumable upload initiation returned no Location header")
        self._set_state(UploadState.INITIATION_COMPLETE)
        _log("upload_session_started", url=url)

        self._set_state(UploadState.MEDIA_IN_PROGRESS)
        while True:
            chunk, content_range = self._next_chunk()
            request = self._transport.build_request(
                HTTP_METHOD.PUT,
                location,
                ByteArrayContent(self._media.type, chunk),
            )
            request.throw_exception_on_execute_error = False
            request.enable_gzip_content = False
            request.headers.content_length = len(chunk)
            request.headers.content_range = content_range
            response = await request.execute()

            if response.status_code != RESUME_INCOMPLETE_STATUS:
                if response.is_success_status_code():
                    self._bytes_uploaded += len(chunk)
                    self._buffer.clear()
                    self._set_state(UploadState.MEDIA_COMPLETE)
                    _log("upload_complete", bytes_uploaded=self._bytes_uploaded)
                return response

            persisted_end = self._persisted_end(response.headers.range)
            await response.aclose()
            acknowledged = persisted_end + 1 - self._bytes_uploaded
            del self._buffer[:acknowledged]
            self._bytes_uploaded = persisted_end + 1
            self._set_state(UploadState.MEDIA_IN_PROGRESS)

    async def _initiate(self, url: str) -> TransportResponse:
        content = self.metadata if self.metadata is not None else EmptyContent()
        request = self._transport.build_request(self.initiation_method, url, content)
        request.throw_exception_on_execute_error = False
        request.headers.put_all(self.initiation_headers)
        if content.length >= 0:
            request.headers.content_length = content.length
        if content.type:
            request.headers.content_type = content.type
        if self._media.type:
            request.headers[HEADER.UPLOAD_CONTENT_TYPE] = self._media.type
        if self._media.length >= 0:
            request.headers[HEADER.UPLOAD_CONTENT_LENGTH] = str(self._media.length)
        return await request.execute()

    def _fill_buffer(self) -> None:
        # One byte past a full chunk tells us whether this chunk is the last one.
        wanted = self.chunk_size + 1
        while not self._media_exhausted and len(self._buffer) < wanted:
            data = self._media.read_chunk(wanted - len(self._buffer))
            if not data:
                self._media_exhausted = True
                break
            self._buffer.extend(data)

    def _next_chunk(self) -> tuple[bytes, str]:
        self._fill_buffer()
        chunk = bytes(self._buffer[: self.chunk_size])
        is_last = self._media_exhausted and len(self._buffer) <= self.chunk_size
        start = self._bytes_uploaded
        if self._media.length >= 0:
            total = str(self._media.length)
        elif is_last:
            total = str(start + len(chunk))
        else:
            total = "*"
        if not chunk:
            return chunk, f"bytes */{total}"
        return chunk, f"bytes {start}-{start + len(chunk) - 1}/{total}"

    def _persisted_end(self, range_header: str | None) -> int:
        if not range_header:
            return self._bytes_uploaded - 1
        match = _RANGE_END.match(range_header)
        if match is None:
            raise TransportError(f"malformed Range header in resumable upload response: {range_header!r}")
        return int(match.group(1))
