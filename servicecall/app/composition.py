"""Composition root: build and lifecycle-manage concrete dependencies.

Composition may: import concrete classes, call factories, store interface types,
manage high-level lifecycle.
"""
from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from servicecall.app.application.client import ServiceClient
from servicecall.app.config.settings import Settings
from servicecall.app.core import SERVICE_NAME
from servicecall.app.domain.error_materializer import ErrorMaterializer
from servicecall.app.domain.method_override import MethodOverride
from servicecall.app.infrastructure.codec.pydantic_codec import PydanticJsonCodec
from servicecall.app.infrastructure.http.factory import create_transport
from servicecall.app.infrastructure.http.httpx_transport import RequestInitializer
from servicecall.app.infrastructure.media.factory import create_media_factory
from servicecall.app.infrastructure.subscriptions.factory import create_subscription_store
from servicecall.app.infrastructure.uri.template_expander import TemplateExpander
from servicecall.app.ports.subscription_store import SubscriptionStore
from servicecall.app.ports.transport import Transport


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class ServiceDependencies:
    """Holds the wired ServiceClient and its lifecycle."""

    def __init__(
        self,
        *,
        settings: Settings,
        initializer: RequestInitializer | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
        error_materializer: ErrorMaterializer | None = None,
    ) -> None:
        self._settings = settings
        self._initializer = initializer
        self._http_transport = http_transport
        self._error_materializer = error_materializer
        self._transport: Transport | None = None
        self._subscription_store: SubscriptionStore | None = None
        self._client: ServiceClient | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def client(self) -> ServiceClient:
        if self._client is None:
            raise RuntimeError("client is not initialized")
        return self._client

    @property
    def subscription_store(self) -> SubscriptionStore:
        if self._subscription_store is None:
            raise RuntimeError("subscription_store is not initialized")
        return self._subscription_store

    def connect(self) -> ServiceClient:
        settings = self._settings
        self._transport = create_transport(
            settings,
            initializer=self._initializer,
            http_transport=self._http_transport,
        )
        self._subscription_store = create_subscription_store(settings)
        self._client = ServiceClient(
            base_url=settings.base_url,
            transport=self._transport,
            codec=PydanticJsonCodec(),
            expander=TemplateExpander(),
            subscription_store=self._subscription_store,
            media_factory=create_media_factory(settings, self._transport),
            application_name=settings.application_name,
            error_materializer=self._error_materializer,
            method_override=MethodOverride(override_all_methods=settings.override_all_methods),
            disable_gzip_content=settings.disable_gzip_content,
        )
        _log("client_ready", base_url=settings.base_url)
        return self._client

    async def close(self) -> None:
        if self._transport is not None:
            try:
                await self._transport.close()
            except Exception as exc:
                logger.warning("transport close failed: {}", exc)
            self._transport = None

        self._client = None
        self._subscription_store = None


def create_service_dependencies(settings: Settings | None = None, **kwargs: Any) -> ServiceDependencies:
    return ServiceDependencies(settings=settings or Settings(), **kwargs)
