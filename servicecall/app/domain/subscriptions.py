"""Subscription bookkeeping: client tokens, reserved headers, callbacks, records."""
from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, ClassVar, TYPE_CHECKING

from servicecall.app.constants import SUBSCRIPTION_HEADER
from servicecall.app.domain.errors import ConfigurationError
from servicecall.app.domain.headers import HeaderSet

if TYPE_CHECKING:
    from servicecall.app.ports.object_codec import ObjectCodec

CLIENT_TOKEN_BYTES = 24


def generate_client_token() -> str:
    """Random URL-safe token; 24 random bytes encode to 32 printable characters."""
    return secrets.token_urlsafe(CLIENT_TOKEN_BYTES)


class SubscriptionHeaders:
    """Read-only view of the subscription keys of a header set."""

    def __init__(self, headers: HeaderSet) -> None:
        self._headers = headers

    @property
    def subscribe(self) -> str | None:
        return self._headers.get(SUBSCRIPTION_HEADER.SUBSCRIBE)

    @property
    def client_token(self) -> str | None:
        return self._headers.get(SUBSCRIPTION_HEADER.CLIENT_TOKEN)

    @property
    def subscription_id(self) -> str | None:
        return self._headers.get(SUBSCRIPTION_HEADER.SUBSCRIPTION_ID)

    @property
    def topic_id(self) -> str | None:
        return self._headers.get(SUBSCRIPTION_HEADER.TOPIC_ID)

    @property
    def topic_uri(self) -> str | None:
        return self._headers.get(SUBSCRIPTION_HEADER.TOPIC_URI)


@dataclass(frozen=True)
class UnparsedNotification:
    """A notification as handed over by the delivery channel."""

    subscription_id: str
    client_token: str | None
    topic_id: str | None = None
    topic_uri: str | None = None
    event_type: str | None = None
    message_number: int = 0
    content_type: str | None = None
    content: bytes = b""


@dataclass(frozen=True)
class TypedNotification:
    subscription_id: str
    client_token: str | None
    topic_id: str | None
    topic_uri: str | None
    event_type: str | None
    message_number: int
    content: Any


class NotificationCallback:
    """Untyped callback: receives notifications with the raw content bytes."""

    typed: ClassVar[bool] = False

    def __init__(self, handler: Callable[[UnparsedNotification], Awaitable[None] | None]) -> None:
        self._handler = handler

    async def deliver(self, notification: UnparsedNotification, codec: "ObjectCodec") -> None:
        result = self._handler(notification)
        if result is not None:
            await result


class TypedNotificationCallback(NotificationCallback):
    """Typed callback: content is decoded into the bound data type before delivery.

    The data type is bound by the request that subscribes with this callback.
    """

    typed: ClassVar[bool] = True

    def __init__(self, handler: Callable[[TypedNotification], Awaitable[None] | None]) -> None:
        super().__init__(handler)  # type: ignore[arg-type]
        self.data_type: Any = None

    def bind_data_type(self, data_type: Any) -> None:
        self.data_type = data_type

    async def deliver(self, notification: UnparsedNotification, codec: "ObjectCodec") -> None:
        if self.data_type is None:
            raise ConfigurationError("typed notification callback has no bound data type")
        content = None
        if notification.content:
            content = codec.decode(notification.content, self.data_type)
        typed = TypedNotification(
            subscription_id=notification.subscription_id,
            client_token=notification.client_token,
            topic_id=notification.topic_id,
            topic_uri=notification.topic_uri,
            event_type=notification.event_type,
            message_number=notification.message_number,
            content=content,
        )
        result = self._handler(typed)  # type: ignore[arg-type]
        if result is not None:
            await result


@dataclass(frozen=True)
class Subscription:
    """An active subscription, keyed by client token in the subscription store."""

    subscription_id: str | None
    client_token: str | None
    notification_callback: NotificationCallback
    topic_id: str | None = None
    topic_uri: str | None = None

    @staticmethod
    def from_headers(
        headers: SubscriptionHeaders,
        callback: NotificationCallback,
        *,
        fallback_client_token: str | None = None,
    ) -> "Subscription":
        """Build the record from a subscribe response; the echoed client token wins over the fallback."""
        return Subscription(
            subscription_id=headers.subscription_id,
            client_token=headers.client_token or fallback_client_token,
            notification_callback=callback,
            topic_id=headers.topic_id,
            topic_uri=headers.topic_uri,
        )
