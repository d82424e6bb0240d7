"""Unit tests for settings and the composition root."""
from __future__ import annotations

import pytest

from servicecall.app.composition import create_service_dependencies
from servicecall.app.config.settings import Settings
from servicecall.app.domain.errors import ConfigurationError
from servicecall.app.infrastructure.http.httpx_transport import HttpxTransport
from servicecall.app.infrastructure.media.chunked_downloader import ChunkedDownloader
from servicecall.app.infrastructure.subscriptions.in_memory_store import InMemorySubscriptionStore
from tests.fakes import FakeTransport, make_client
from tests.test_data import BASE_URL


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("SERVICE_BASE_URL", BASE_URL)
    monkeypatch.setenv("OVERRIDE_ALL_METHODS", "true")
    monkeypatch.setenv("DOWNLOAD_CHUNK_SIZE", "1024")

    settings = Settings()

    assert settings.base_url == BASE_URL
    assert settings.override_all_methods is True
    assert settings.download_chunk_size == 1024
    assert settings.transport_backend == "httpx"
    assert settings.disable_gzip_content is False


@pytest.mark.asyncio
async def test_connect_wires_default_adapters():
    deps = create_service_dependencies(Settings(SERVICE_BASE_URL=BASE_URL, DIRECT_DOWNLOAD_ENABLED=True))

    client = deps.connect()

    assert client.base_url == BASE_URL
    assert isinstance(client.transport, HttpxTransport)
    assert isinstance(deps.subscription_store, InMemorySubscriptionStore)
    downloader = client.media_factory.create_downloader()
    assert isinstance(downloader, ChunkedDownloader)
    assert downloader.direct_download_enabled is True
    await deps.close()
    with pytest.raises(RuntimeError):
        deps.client


def test_unknown_backends_are_rejected():
    with pytest.raises(ValueError, match="transport backend"):
        create_service_dependencies(Settings(SERVICE_BASE_URL=BASE_URL, TRANSPORT_BACKEND="grpc")).connect()
    with pytest.raises(ValueError, match="subscription store backend"):
        create_service_dependencies(
            Settings(SERVICE_BASE_URL=BASE_URL, SUBSCRIPTION_STORE_BACKEND="redis")
        ).connect()


def test_client_requires_base_url():
    with pytest.raises(ConfigurationError):
        make_client(FakeTransport(), base_url="")


def test_media_factory_is_required_for_media_transfers():
    with pytest.raises(ConfigurationError):
        make_client(FakeTransport()).media_factory
