"""Transport factory: builds a Transport from settings (no provider logic in composition)."""
from __future__ import annotations

import httpx

from servicecall.app.config.settings import Settings
from servicecall.app.ports.transport import Transport
from servicecall.app.infrastructure.http.httpx_transport import HttpxTransport, RequestInitializer


def create_transport(
    settings: Settings,
    *,
    initializer: RequestInitializer | None = None,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> Transport:
    """Build a transport from settings. ``http_transport`` swaps the network layer (e.g. httpx.MockTransport)."""
    backend = settings.transport_backend.strip().lower()

    if backend == "httpx":
        timeout = httpx.Timeout(
            connect=settings.connect_timeout_seconds,
            read=settings.read_timeout_seconds,
            write=settings.read_timeout_seconds,
            pool=settings.connect_timeout_seconds,
        )
        async_client = httpx.AsyncClient(timeout=timeout, transport=http_transport)
        return HttpxTransport(async_client, timeout=timeout, initializer=initializer)

    raise ValueError(f"Unsupported transport backend: {backend}")
