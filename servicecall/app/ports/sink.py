"""Port: destination for streamed response bodies."""
from __future__ import annotations

import inspect
from typing import Any, Protocol


class BinarySink(Protocol):
    """Anything with ``write(bytes)``: a binary file, BytesIO, or an async writer.

    An awaitable return value from ``write`` is awaited before the next chunk.
    """

    def write(self, data: bytes) -> Any: ...


async def write_to_sink(sink: BinarySink, data: bytes) -> None:
    result = sink.write(data)
    if inspect.isawaitable(result):
        await result
