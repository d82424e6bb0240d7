"""Object codec port: contract for (de)serializing payloads."""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ObjectCodec(Protocol):
    """Port: decode response bodies into typed values and encode request payloads."""

    content_type: str

    def decode(self, data: bytes, target_type: Any) -> Any:
        """Decode ``data`` as ``target_type``; raise ValueError when it does not fit."""
        ...

    def encode(self, value: Any) -> bytes: ...
