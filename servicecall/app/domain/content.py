"""Request body descriptors.

A request either has no content (None), an EmptyContent (present but zero
length, so a ``Content-Length: 0`` header is still sent), or a payload whose
length may be unknown (``-1``).
"""
from __future__ import annotations

from typing import Any, BinaryIO, Protocol, TYPE_CHECKING, runtime_checkable

if TYPE_CHECKING:
    from servicecall.app.ports.object_codec import ObjectCodec

UNKNOWN_LENGTH = -1


@runtime_checkable
class HttpContent(Protocol):
    @property
    def type(self) -> str | None: ...

    @property
    def length(self) -> int: ...

    @property
    def retry_supported(self) -> bool: ...

    def read(self) -> bytes: ...


class EmptyContent:
    """Zero-length content; forces a ``Content-Length: 0`` header."""

    type: str | None = None
    length = 0
    retry_supported = True

    def read(self) -> bytes:
        return b""

    def __repr__(self) -> str:
        return "EmptyContent()"


class ByteArrayContent:
    def __init__(self, type: str | None, data: bytes) -> None:
        self.type = type
        self._data = bytes(data)

    @property
    def length(self) -> int:
        return len(self._data)

    @property
    def retry_supported(self) -> bool:
        return True

    def read(self) -> bytes:
        return self._data


class JsonContent:
    """Payload encoded through the object codec on first read."""

    def __init__(self, codec: "ObjectCodec", data: Any) -> None:
        self._codec = codec
        self.data = data
        self.type = codec.content_type
        self._encoded: bytes | None = None

    def _bytes(self) -> bytes:
        if self._encoded is None:
            self._encoded = self._codec.encode(self.data)
        return self._encoded

    @property
    def length(self) -> int:
        return len(self._bytes())

    @property
    def retry_supported(self) -> bool:
        return True

    def read(self) -> bytes:
        return self._bytes()


class InputStreamContent:
    """Content backed by a readable binary stream; used as media for resumable uploads.

    The stream is consumed as it is read, so retrying is only possible when
    the stream is seekable.
    """

    def __init__(self, type: str | None, stream: BinaryIO, length: int = UNKNOWN_LENGTH) -> None:
        self.type = type
        self.stream = stream
        self.length = length

    @property
    def retry_supported(self) -> bool:
        seekable = getattr(self.stream, "seekable", None)
        return bool(seekable and seekable())

    def read(self) -> bytes:
        return self.stream.read()

    def read_chunk(self, size: int) -> bytes:
        return self.stream.read(size)
