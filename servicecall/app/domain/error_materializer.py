"""Turns a non-success response into the exception raised to the caller."""
from __future__ import annotations

from typing import Any

from loguru import logger

from servicecall.app.domain.errors import HttpStatusError
from servicecall.app.ports.object_codec import ObjectCodec
from servicecall.app.ports.transport import TransportResponse


async def _read_text(response: TransportResponse) -> str:
    try:
        body = await response.read()
    finally:
        await response.aclose()
    return body.decode("utf-8", errors="replace")


class ErrorMaterializer:
    """Default policy: generic HttpStatusError with status, message, headers and body text."""

    async def materialize(self, response: TransportResponse) -> Exception:
        content = await _read_text(response)
        return HttpStatusError(
            response.status_code,
            response.status_message,
            response.headers.copy(),
            content=content or None,
        )


class DecodedErrorMaterializer(ErrorMaterializer):
    """Decodes a structured error payload into ``error_type`` and attaches it as ``details``.

    A body that does not decode still yields the generic error shape.
    """

    def __init__(self, codec: ObjectCodec, error_type: Any) -> None:
        self._codec = codec
        self._error_type = error_type

    async def materialize(self, response: TransportResponse) -> Exception:
        content = await _read_text(response)
        details = None
        if content:
            try:
                details = self._codec.decode(content.encode("utf-8"), self._error_type)
            except ValueError as exc:
                logger.debug("error payload did not decode as {}: {}", self._error_type, exc)
        return HttpStatusError(
            response.status_code,
            response.status_message,
            response.headers.copy(),
            content=content or None,
            details=details,
        )
