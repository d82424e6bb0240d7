"""Media transfer factory: uploaders and downloaders bound to one transport."""
from __future__ import annotations

from servicecall.app.config.settings import Settings
from servicecall.app.constants import DEFAULT_DOWNLOAD_CHUNK_SIZE, DEFAULT_UPLOAD_CHUNK_SIZE
from servicecall.app.domain.content import InputStreamContent
from servicecall.app.infrastructure.media.chunked_downloader import ChunkedDownloader
from servicecall.app.infrastructure.media.resumable_uploader import ResumableUploader
from servicecall.app.ports.media import MediaTransferFactory
from servicecall.app.ports.transport import Transport


class TransportMediaFactory(MediaTransferFactory):
    def __init__(
        self,
        transport: Transport,
        *,
        upload_chunk_size: int = DEFAULT_UPLOAD_CHUNK_SIZE,
        download_chunk_size: int = DEFAULT_DOWNLOAD_CHUNK_SIZE,
        direct_download_enabled: bool = False,
    ) -> None:
        self._transport = transport
        self._upload_chunk_size = upload_chunk_size
        self._download_chunk_size = download_chunk_size
        self._direct_download_enabled = direct_download_enabled

    def create_uploader(self, media_content: InputStreamContent) -> ResumableUploader:
        return ResumableUploader(media_content, self._transport, chunk_size=self._upload_chunk_size)

    def create_downloader(self) -> ChunkedDownloader:
        return ChunkedDownloader(
            self._transport,
            chunk_size=self._download_chunk_size,
            direct_download_enabled=self._direct_download_enabled,
        )


def create_media_factory(settings: Settings, transport: Transport) -> MediaTransferFactory:
    return TransportMediaFactory(
        transport,
        upload_chunk_size=settings.upload_chunk_size,
        download_chunk_size=settings.download_chunk_size,
        direct_download_enabled=settings.direct_download_enabled,
    )
