"""Ports: deferred batch execution."""
from __future__ import annotations

from typing import Any, Protocol

from servicecall.app.domain.headers import HeaderSet
from servicecall.app.ports.transport import TransportRequest


class BatchCallback(Protocol):
    async def on_success(self, result: Any, response_headers: HeaderSet) -> None: ...

    async def on_failure(self, error: Any, response_headers: HeaderSet) -> None: ...


class BatchContainer(Protocol):
    """Port: collects built requests; dispatch happens on the container's own ``execute``."""

    def queue(
        self,
        request: TransportRequest,
        result_type: Any,
        error_type: Any,
        callback: BatchCallback,
    ) -> None: ...
