"""Templated base service shared by every request built against it."""
from __future__ import annotations

from servicecall.app.domain.error_materializer import ErrorMaterializer
from servicecall.app.domain.errors import ConfigurationError
from servicecall.app.domain.method_override import MethodOverride
from servicecall.app.ports.media import MediaTransferFactory
from servicecall.app.ports.object_codec import ObjectCodec
from servicecall.app.ports.subscription_store import SubscriptionStore
from servicecall.app.ports.transport import Transport
from servicecall.app.ports.uri_template import UriTemplateExpander


class ServiceClient:
    """Holds the collaborators a ServiceRequest calls into.

    Only ports are stored here; concrete adapters are chosen in the
    composition root.
    """

    def __init__(
        self,
        *,
        base_url: str,
        transport: Transport,
        codec: ObjectCodec,
        expander: UriTemplateExpander,
        subscription_store: SubscriptionStore,
        media_factory: MediaTransferFactory | None = None,
        application_name: str | None = None,
        error_materializer: ErrorMaterializer | None = None,
        method_override: MethodOverride | None = None,
        disable_gzip_content: bool = False,
    ) -> None:
        if not base_url:
            raise ConfigurationError("base_url is required")
        self._base_url = base_url
        self._transport = transport
        self._codec = codec
        self._expander = expander
        self._subscription_store = subscription_store
        self._media_factory = media_factory
        self._application_name = application_name or None
        self._error_materializer = error_materializer or ErrorMaterializer()
        self._method_override = method_override or MethodOverride()
        self._disable_gzip_content = disable_gzip_content

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def application_name(self) -> str | None:
        return self._application_name

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def codec(self) -> ObjectCodec:
        return self._codec

    @property
    def expander(self) -> UriTemplateExpander:
        return self._expander

    @property
    def subscription_store(self) -> SubscriptionStore:
        return self._subscription_store

    @property
    def media_factory(self) -> MediaTransferFactory:
        if self._media_factory is None:
            raise ConfigurationError("media transfer is not configured for this client")
        return self._media_factory

    @property
    def error_materializer(self) -> ErrorMaterializer:
        return self._error_materializer

    @property
    def method_override(self) -> MethodOverride:
        return self._method_override

    @property
    def disable_gzip_content(self) -> bool:
        return self._disable_gzip_content

    async def close(self) -> None:
        await self._transport.close()
