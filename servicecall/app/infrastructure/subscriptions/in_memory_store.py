"""In-memory subscription registry (no persistence; survives only for the process lifetime)."""
from __future__ import annotations

import threading

from servicecall.app.domain.subscriptions import Subscription
from servicecall.app.ports.subscription_store import SubscriptionStore


class InMemorySubscriptionStore(SubscriptionStore):
    """Implements SubscriptionStore. Stores are last-write-wins per client token."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: dict[str, Subscription] = {}

    def store_subscription(self, subscription: Subscription) -> None:
        if not subscription.client_token:
            raise ValueError("subscription has no client token")
        with self._lock:
            self._subscriptions[subscription.client_token] = subscription

    def get_subscription(self, client_token: str) -> Subscription | None:
        with self._lock:
            return self._subscriptions.get(client_token)

    def remove_subscription(self, client_token: str) -> None:
        with self._lock:
            self._subscriptions.pop(client_token, None)

    def list_subscriptions(self) -> list[Subscription]:
        with self._lock:
            return list(self._subscriptions.values())
