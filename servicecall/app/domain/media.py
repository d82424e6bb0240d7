"""The media transfer slot of a request: nothing, an uploader, or a downloader."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union, TYPE_CHECKING

if TYPE_CHECKING:
    from servicecall.app.ports.media import Downloader, Uploader


@dataclass(frozen=True)
class NoMediaTransfer:
    pass


@dataclass(frozen=True)
class MediaUpload:
    uploader: "Uploader"


@dataclass(frozen=True)
class MediaDownload:
    downloader: "Downloader"


MediaTransfer = Union[NoMediaTransfer, MediaUpload, MediaDownload]

NO_MEDIA_TRANSFER = NoMediaTransfer()
