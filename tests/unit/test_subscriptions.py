"""Unit tests for subscription intent, client tokens and registry bookkeeping."""
from __future__ import annotations

import threading

import pytest

from servicecall.app.application.request import ServiceRequest
from servicecall.app.domain.errors import ConfigurationError, HttpStatusError
from servicecall.app.domain.headers import HeaderSet
from servicecall.app.domain.subscriptions import (
    NotificationCallback,
    Subscription,
    SubscriptionHeaders,
    TypedNotificationCallback,
    UnparsedNotification,
    generate_client_token,
)
from servicecall.app.infrastructure.codec.pydantic_codec import PydanticJsonCodec
from servicecall.app.infrastructure.subscriptions.in_memory_store import InMemorySubscriptionStore
from tests.fakes import FakeResponse, FakeTransport, make_client
from tests.test_data import ITEM_BODY, SUBSCRIPTION_RESPONSE_HEADERS, Item


def _noop(notification) -> None:
    return None


def _watch_item(transport: FakeTransport, store) -> ServiceRequest:
    return ServiceRequest(make_client(transport, store=store), "POST", "/items/{id}/watch", None, Item, params={"id": "42"})


def test_client_tokens_are_unique_over_many_generations():
    tokens = [generate_client_token() for _ in range(10_000)]

    assert len(set(tokens)) == len(tokens)
    assert all(len(token) >= 27 and token.isprintable() for token in tokens)


def test_subscribe_sets_reserved_headers_and_marks_subscribing(store):
    request = _watch_item(FakeTransport(), store)
    callback = NotificationCallback(_noop)

    request.subscribe_unparsed("web_hook", callback)

    assert request.is_subscribing is True
    assert request.notification_callback is callback
    assert request.notification_delivery_method == "web_hook"
    assert request.request_headers["X-Goog-Subscribe"] == "web_hook"
    assert request.notification_client_token == request.request_headers["X-Goog-Client-Token"]


def test_subscribing_twice_keeps_last_token(store):
    request = _watch_item(FakeTransport(), store)
    request.subscribe_unparsed("web_hook")
    first = request.notification_client_token

    request.subscribe_unparsed("web_hook")

    assert request.notification_client_token != first
    assert request.request_headers.get_all("X-Goog-Client-Token") == [request.notification_client_token]


def test_client_token_can_be_overridden(store):
    request = _watch_item(FakeTransport(), store)
    request.subscribe_unparsed("web_hook")

    request.notification_client_token = "my-token"

    assert request.request_headers["X-Goog-Client-Token"] == "my-token"


def test_empty_delivery_method_is_rejected(store):
    request = _watch_item(FakeTransport(), store)

    with pytest.raises(ConfigurationError):
        request.subscribe_unparsed("", NotificationCallback(_noop))
    assert request.is_subscribing is False


def test_typed_callback_is_bound_to_result_type(store):
    request = _watch_item(FakeTransport(), store)
    callback = TypedNotificationCallback(_noop)

    request.subscribe("web_hook", callback)

    assert callback.data_type is Item


@pytest.mark.asyncio
async def test_successful_subscription_is_stored_once_with_request_token(store):
    transport = FakeTransport(responder=lambda req: FakeResponse(
        200,
        ITEM_BODY,
        {**SUBSCRIPTION_RESPONSE_HEADERS, "X-Goog-Client-Token": req.headers["X-Goog-Client-Token"]},
    ))
    request = _watch_item(transport, store)
    callback = NotificationCallback(_noop)
    request.subscribe_unparsed("web_hook", callback)
    sent_token = request.notification_client_token

    await request.execute()

    assert len(store.stored) == 1
    subscription = store.stored[0]
    assert subscription.client_token == sent_token
    assert transport.executed[0].sent_headers["X-Goog-Client-Token"] == sent_token
    assert subscription.subscription_id == "sub-123"
    assert subscription.topic_id == "topic-9"
    assert subscription.notification_callback is callback
    assert request.last_subscription == subscription
    assert request.last_subscription_headers.subscription_id == "sub-123"


@pytest.mark.asyncio
async def test_token_falls_back_to_request_token_when_not_echoed(store):
    transport = FakeTransport([FakeResponse(200, ITEM_BODY, SUBSCRIPTION_RESPONSE_HEADERS)])
    request = _watch_item(transport, store)
    request.subscribe_unparsed("web_hook", NotificationCallback(_noop))

    await request.execute()

    assert store.stored[0].client_token == request.notification_client_token


@pytest.mark.asyncio
async def test_subscription_without_callback_records_headers_only(store):
    transport = FakeTransport([FakeResponse(200, ITEM_BODY, SUBSCRIPTION_RESPONSE_HEADERS)])
    request = _watch_item(transport, store)
    request.subscribe_unparsed("web_hook")

    await request.execute()

    assert store.stored == []
    assert request.last_subscription is None
    assert request.last_subscription_headers.topic_uri == "https://api.example.com/v1/items/42"


@pytest.mark.asyncio
async def test_failed_subscription_is_not_stored(store):
    transport = FakeTransport([FakeResponse(403, b"denied", SUBSCRIPTION_RESPONSE_HEADERS)])
    request = _watch_item(transport, store)
    request.subscribe_unparsed("web_hook", NotificationCallback(_noop))

    with pytest.raises(HttpStatusError):
        await request.execute()

    assert store.stored == []
    assert request.last_subscription is None
    assert request.last_subscription_headers is None
    assert request.last_status_code == 403


@pytest.mark.asyncio
async def test_not_subscribing_leaves_tracking_empty(store):
    transport = FakeTransport([FakeResponse(200, ITEM_BODY, SUBSCRIPTION_RESPONSE_HEADERS)])
    request = _watch_item(transport, store)

    await request.execute()

    assert store.stored == []
    assert request.last_subscription_headers is None


@pytest.mark.asyncio
async def test_typed_callback_delivers_decoded_content():
    received = []
    callback = TypedNotificationCallback(received.append)
    callback.bind_data_type(Item)
    notification = UnparsedNotification(
        subscription_id="sub-123",
        client_token="tok",
        event_type="update",
        message_number=3,
        content_type="application/json",
        content=ITEM_BODY,
    )

    await callback.deliver(notification, PydanticJsonCodec())

    assert received[0].content == Item(id="42")
    assert received[0].message_number == 3


@pytest.mark.asyncio
async def test_untyped_callback_receives_raw_notification():
    received = []

    async def handler(notification) -> None:
        received.append(notification)

    notification = UnparsedNotification(subscription_id="sub-123", client_token="tok", content=b"raw")

    await NotificationCallback(handler).deliver(notification, PydanticJsonCodec())

    assert received == [notification]


@pytest.mark.asyncio
async def test_unbound_typed_callback_rejects_delivery():
    callback = TypedNotificationCallback(_noop)

    with pytest.raises(ConfigurationError):
        await callback.deliver(UnparsedNotification("sub", "tok", content=b"{}"), PydanticJsonCodec())


def test_in_memory_store_keeps_concurrent_inserts():
    store = InMemorySubscriptionStore()
    callback = NotificationCallback(_noop)

    def insert(batch: int) -> None:
        for i in range(200):
            store.store_subscription(Subscription(f"sub-{batch}-{i}", f"tok-{batch}-{i}", callback))

    threads = [threading.Thread(target=insert, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(store.list_subscriptions()) == 1600
    assert store.get_subscription("tok-3-17").subscription_id == "sub-3-17"
    store.remove_subscription("tok-3-17")
    assert store.get_subscription("tok-3-17") is None


def test_in_memory_store_requires_client_token():
    store = InMemorySubscriptionStore()

    with pytest.raises(ValueError):
        store.store_subscription(Subscription("sub", None, NotificationCallback(_noop)))


def test_subscription_from_headers_prefers_echoed_token():
    callback = NotificationCallback(_noop)
    echoed = SubscriptionHeaders(HeaderSet({**SUBSCRIPTION_RESPONSE_HEADERS, "X-Goog-Client-Token": "echoed"}))
    silent = SubscriptionHeaders(HeaderSet(SUBSCRIPTION_RESPONSE_HEADERS))

    assert Subscription.from_headers(echoed, callback, fallback_client_token="sent").client_token == "echoed"
    fallback = Subscription.from_headers(silent, callback, fallback_client_token="sent")
    assert fallback.client_token == "sent"
    assert fallback.subscription_id == "sub-123"
    assert fallback.topic_uri == "https://api.example.com/v1/items/42"
    assert fallback.notification_callback is callback
