"""Lifecycle of a single API call: build, dispatch, interpret, and expose the result.

A ServiceRequest moves through ``UNBUILT -> BUILT -> DISPATCHED ->
SUCCEEDED|FAILED`` and is executed at most once; build a new request for
every attempt.

Response bookkeeping (status code, status message, header snapshot) and
subscription registration happen before the error decision, so a caller
that catches HttpStatusError still sees the request's last status.
"""
from __future__ import annotations

from typing import Any, AsyncIterator, Awaitable, Mapping

from loguru import logger

from servicecall.app.application.client import ServiceClient
from servicecall.app.constants import (
    HEADER,
    HTTP_METHOD,
    NOT_EXECUTED_STATUS,
    SUBSCRIPTION_HEADER,
    ExecutionState,
)
from servicecall.app.core import SERVICE_NAME
from servicecall.app.domain.content import EmptyContent, HttpContent, InputStreamContent
from servicecall.app.domain.errors import (
    ConfigurationError,
    HttpStatusError,
    InvalidStateError,
    UnsupportedStateError,
)
from servicecall.app.domain.headers import HeaderSet
from servicecall.app.domain.media import (
    NO_MEDIA_TRANSFER,
    MediaDownload,
    MediaTransfer,
    MediaUpload,
    NoMediaTransfer,
)
from servicecall.app.domain.models import RequestDescriptor, is_no_content
from servicecall.app.domain.subscriptions import (
    NotificationCallback,
    Subscription,
    SubscriptionHeaders,
    TypedNotificationCallback,
    generate_client_token,
)
from servicecall.app.ports.batch import BatchCallback, BatchContainer
from servicecall.app.ports.media import Downloader, Uploader
from servicecall.app.ports.sink import BinarySink
from servicecall.app.ports.transport import TransportRequest, TransportResponse


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


async def _iter_and_close(response: TransportResponse) -> AsyncIterator[bytes]:
    try:
        async for chunk in response.aiter_bytes():
            yield chunk
    finally:
        await response.aclose()


class ServiceRequest:
    """One outbound call against a ServiceClient.

    Not safe for concurrent use: a request is owned by the code that built it
    until its execution completes.
    """

    def __init__(
        self,
        client: ServiceClient,
        method: str,
        uri_template: str,
        content: HttpContent | None,
        result_type: Any,
        *,
        params: Mapping[str, Any] | None = None,
    ) -> None:
        if client is None:
            raise ConfigurationError("client is required")
        self._client = client
        self._descriptor = RequestDescriptor(
            method=method,
            uri_template=uri_template,
            content=content,
            result_type=result_type,
        )
        self._params: dict[str, Any] = dict(params) if params else {}
        self._request_headers = HeaderSet()
        if client.application_name:
            self._request_headers.user_agent = client.application_name

        self.disable_gzip_content = client.disable_gzip_content
        # None defers to the transport request's own default.
        self.throw_exception_on_execute_error: bool | None = None

        self._state = ExecutionState.UNBUILT
        self._last_status_code = NOT_EXECUTED_STATUS
        self._last_status_message: str | None = None
        self._last_response_headers: HeaderSet | None = None

        self._is_subscribing = False
        self._notification_callback: NotificationCallback | None = None
        self._last_subscription_headers: SubscriptionHeaders | None = None
        self._last_subscription: Subscription | None = None

        self._media: MediaTransfer = NO_MEDIA_TRANSFER

    # -- descriptor and parameters -------------------------------------------

    @property
    def client(self) -> ServiceClient:
        return self._client

    @property
    def descriptor(self) -> RequestDescriptor:
        return self._descriptor

    @property
    def request_method(self) -> str:
        return self._descriptor.method

    @property
    def uri_template(self) -> str:
        return self._descriptor.uri_template

    @property
    def http_content(self) -> HttpContent | None:
        return self._descriptor.content

    @property
    def result_type(self) -> Any:
        return self._descriptor.result_type

    @property
    def params(self) -> dict[str, Any]:
        return self._params

    def set(self, name: str, value: Any) -> "ServiceRequest":
        """Set a URI template (or unused, query) parameter. ``None`` leaves it out of the URL."""
        self._params[name] = value
        return self

    # -- headers and bookkeeping ---------------------------------------------

    @property
    def request_headers(self) -> HeaderSet:
        return self._request_headers

    @request_headers.setter
    def request_headers(self, headers: HeaderSet) -> None:
        self._request_headers = headers

    @property
    def state(self) -> ExecutionState:
        return self._state

    @property
    def last_status_code(self) -> int:
        """Status code of the last response, or -1 before the request has been executed."""
        return self._last_status_code

    @property
    def last_status_message(self) -> str | None:
        return self._last_status_message

    @property
    def last_response_headers(self) -> HeaderSet | None:
        return self._last_response_headers

    # -- subscriptions -------------------------------------------------------

    @property
    def is_subscribing(self) -> bool:
        return self._is_subscribing

    @property
    def notification_callback(self) -> NotificationCallback | None:
        return self._notification_callback

    @property
    def notification_delivery_method(self) -> str | None:
        return self._request_headers.get(SUBSCRIPTION_HEADER.SUBSCRIBE)

    @property
    def notification_client_token(self) -> str | None:
        return self._request_headers.get(SUBSCRIPTION_HEADER.CLIENT_TOKEN)

    @notification_client_token.setter
    def notification_client_token(self, token: str | None) -> None:
        self._request_headers[SUBSCRIPTION_HEADER.CLIENT_TOKEN] = token

    @property
    def last_subscription_headers(self) -> SubscriptionHeaders | None:
        return self._last_subscription_headers

    @property
    def last_subscription(self) -> Subscription | None:
        return self._last_subscription

    def subscribe_unparsed(
        self,
        delivery_method: str,
        notification_callback: NotificationCallback | None = None,
    ) -> "ServiceRequest":
        """Ask the server to deliver notifications for this resource.

        A fresh client token is generated on every call, so subscribing twice
        keeps only the last token. Override it with ``notification_client_token``.
        """
        if not delivery_method:
            raise ConfigurationError("notification delivery method is required")
        self._notification_callback = notification_callback
        self._request_headers[SUBSCRIPTION_HEADER.SUBSCRIBE] = delivery_method
        self.notification_client_token = generate_client_token()
        if notification_callback is not None and notification_callback.typed:
            notification_callback.bind_data_type(self.result_type)  # type: ignore[attr-defined]
        self._is_subscribing = True
        return self

    def subscribe(
        self,
        delivery_method: str,
        notification_callback: TypedNotificationCallback | None = None,
    ) -> "ServiceRequest":
        """Subscribe with notifications decoded as this request's result type."""
        return self.subscribe_unparsed(delivery_method, notification_callback)

    # -- media transfer ------------------------------------------------------

    @property
    def media_transfer(self) -> MediaTransfer:
        return self._media

    @property
    def media_http_uploader(self) -> Uploader | None:
        return self._media.uploader if isinstance(self._media, MediaUpload) else None

    @property
    def media_http_downloader(self) -> Downloader | None:
        return self._media.downloader if isinstance(self._media, MediaDownload) else None

    def _attach_media(self, media: MediaTransfer) -> None:
        if not isinstance(self._media, NoMediaTransfer):
            raise InvalidStateError("a media transfer is already attached to this request")
        self._media = media

    def initialize_media_upload(self, media_content: InputStreamContent) -> Uploader:
        """Route this request through a resumable upload of ``media_content``.

        The descriptor's content, if any, is sent as the upload metadata.
        """
        uploader = self._client.media_factory.create_uploader(media_content)
        uploader.initiation_method = self.request_method
        if self.http_content is not None:
            uploader.metadata = self.http_content
        self._attach_media(MediaUpload(uploader))
        return uploader

    def initialize_media_download(self) -> Downloader:
        downloader = self._client.media_factory.create_downloader()
        self._attach_media(MediaDownload(downloader))
        return downloader

    # -- building ------------------------------------------------------------

    def build_http_request_url(self) -> str:
        return self._client.expander.expand(
            self._client.base_url,
            self.uri_template,
            self._params,
            True,
        )

    def build_http_request(self) -> TransportRequest:
        """Build, but do not execute, the transport request for a direct call."""
        if isinstance(self._media, MediaUpload):
            raise InvalidStateError("cannot build a direct request while a media upload is attached")
        client = self._client
        content = self.http_content
        override = client.method_override.apply(
            self.request_method,
            HeaderSet(),
            client.transport.supports_method,
            has_content=content is not None,
        )
        # Custom methods may use POST with no content but still need a Content-Length header.
        if content is None and (override.needs_empty_content or self.request_method == HTTP_METHOD.POST):
            content = EmptyContent()

        request = client.transport.build_request(override.wire_method, self.build_http_request_url(), content)
        request.headers.put_all(override.headers)
        if content is not None:
            if content.length >= 0:
                request.headers[HEADER.CONTENT_LENGTH] = str(content.length)
            if content.type:
                request.headers[HEADER.CONTENT_TYPE] = content.type
        request.parser = client.codec
        request.headers.put_all(self._request_headers)

        if self._state is ExecutionState.UNBUILT:
            self._state = ExecutionState.BUILT
        return request

    # -- execution -----------------------------------------------------------

    def _ensure_executable(self) -> None:
        if self._state not in (ExecutionState.UNBUILT, ExecutionState.BUILT):
            raise InvalidStateError(
                f"request already executed (state={self._state.value}); build a new request per attempt"
            )

    async def execute_unparsed(self) -> TransportResponse:
        """Send the request and return the raw response; the caller must ``aclose()`` it."""
        self._ensure_executable()
        client = self._client
        uploader = self.media_http_uploader
        if uploader is None:
            request = self.build_http_request()
            request.enable_gzip_content = not self.disable_gzip_content
            if self.throw_exception_on_execute_error is not None:
                request.throw_exception_on_execute_error = self.throw_exception_on_execute_error
            throw_on_error = request.throw_exception_on_execute_error
            request.throw_exception_on_execute_error = False
            self._state = ExecutionState.DISPATCHED
            _log("request_dispatched", method=request.method, url=request.url)
            response = await self._dispatch(request.execute())
        else:
            url = self.build_http_request_url()
            request = client.transport.build_request(self.request_method, url, self.http_content)
            if self.throw_exception_on_execute_error is not None:
                request.throw_exception_on_execute_error = self.throw_exception_on_execute_error
            throw_on_error = request.throw_exception_on_execute_error
            uploader.initiation_headers = self._request_headers.copy()
            self._state = ExecutionState.DISPATCHED
            _log("upload_dispatched", method=self.request_method, url=url)
            response = await self._dispatch(uploader.upload(url))
            response.request.parser = client.codec

        self._record_response(response.status_code, response.status_message, response.headers)
        success = response.is_success_status_code()
        _log("response_received", status_code=response.status_code, success=success)

        if self._is_subscribing and success:
            self._record_subscription(self._last_response_headers)

        if throw_on_error and not success:
            self._state = ExecutionState.FAILED
            _log("request_failed", status_code=response.status_code)
            raise await self.new_exception_on_error(response)
        self._state = ExecutionState.SUCCEEDED
        return response

    async def _dispatch(self, pending: Awaitable[TransportResponse]) -> TransportResponse:
        try:
            return await pending
        except Exception:
            self._state = ExecutionState.FAILED
            raise

    def _record_response(self, status_code: int, status_message: str | None, headers: HeaderSet) -> None:
        self._last_response_headers = headers.copy()
        self._last_status_code = status_code
        self._last_status_message = status_message

    def _record_subscription(self, response_headers: HeaderSet) -> None:
        self._last_subscription_headers = SubscriptionHeaders(response_headers)
        callback = self._notification_callback
        if callback is None:
            return
        subscription = Subscription.from_headers(
            self._last_subscription_headers,
            callback,
            fallback_client_token=self.notification_client_token,
        )
        self._client.subscription_store.store_subscription(subscription)
        self._last_subscription = subscription
        _log(
            "subscription_stored",
            subscription_id=subscription.subscription_id,
            client_token=subscription.client_token,
        )

    async def new_exception_on_error(self, response: TransportResponse) -> Exception:
        """Exception raised for a non-success response. Subclasses may override."""
        return await self._client.error_materializer.materialize(response)

    async def execute(self) -> Any:
        """Send the request and decode the body as the result type (None for NO_CONTENT)."""
        response = await self.execute_unparsed()
        if is_no_content(self.result_type):
            await response.ignore()
            return None
        return await response.parse_as(self.result_type)

    async def execute_as_stream(self) -> AsyncIterator[bytes]:
        """Send the request and return an iterator over the body; exhausting it closes the response."""
        response = await self.execute_unparsed()
        return _iter_and_close(response)

    async def download(self, sink: BinarySink) -> None:
        """Write the response body into ``sink``.

        With a downloader attached, the downloader runs its own ranged GETs
        instead of a direct dispatch.
        """
        if self._notification_callback is not None:
            raise UnsupportedStateError(
                "subscribing with a notification callback during media download is not supported"
            )
        downloader = self.media_http_downloader
        if downloader is None:
            response = await self.execute_unparsed()
            await response.download(sink)
            return
        self._ensure_executable()
        url = self.build_http_request_url()
        self._state = ExecutionState.DISPATCHED
        _log("download_dispatched", url=url)
        try:
            response = await self._dispatch(downloader.download(url, self._request_headers.copy(), sink))
        except HttpStatusError as exc:
            self._record_response(exc.status_code, exc.status_message, exc.headers)
            raise
        self._record_response(response.status_code, response.status_message, response.headers)
        self._state = ExecutionState.SUCCEEDED

    def queue(self, batch: BatchContainer, error_type: Any, callback: BatchCallback) -> None:
        """Build the request and hand it to ``batch``; it is sent when the batch executes.

        A queued request counts as dispatched and cannot be executed again.
        """
        if self._notification_callback is not None:
            raise UnsupportedStateError(
                "subscribing with a notification callback during batch is not supported"
            )
        self._ensure_executable()
        batch.queue(self.build_http_request(), self.result_type, error_type, callback)
        self._state = ExecutionState.DISPATCHED
