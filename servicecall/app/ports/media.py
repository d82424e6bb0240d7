"""Ports: chunked media transfer (resumable upload, ranged download)."""
from __future__ import annotations

from typing import Protocol

from servicecall.app.domain.content import HttpContent, InputStreamContent
from servicecall.app.domain.headers import HeaderSet
from servicecall.app.ports.sink import BinarySink
from servicecall.app.ports.transport import TransportResponse


class Uploader(Protocol):
    initiation_method: str
    metadata: HttpContent | None
    initiation_headers: HeaderSet

    async def upload(self, url: str) -> TransportResponse:
        """Run the whole transfer; return the final response (caller closes it)."""
        ...


class Downloader(Protocol):
    async def download(self, url: str, headers: HeaderSet, sink: BinarySink) -> TransportResponse:
        """Write the media into ``sink``; return the last response, already closed."""
        ...


class MediaTransferFactory(Protocol):
    """Port: creates uploaders and downloaders bound to the client's transport."""

    def create_uploader(self, media_content: InputStreamContent) -> Uploader: ...

    def create_downloader(self) -> Downloader: ...
