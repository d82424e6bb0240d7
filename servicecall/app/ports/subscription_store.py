"""Abstract interface for the process-wide subscription registry (port)."""
from __future__ import annotations

from typing import Protocol

from servicecall.app.domain.subscriptions import Subscription


class SubscriptionStore(Protocol):
    """Port: subscription persistence keyed by client token. Must tolerate concurrent stores."""

    def store_subscription(self, subscription: Subscription) -> None: ...

    def get_subscription(self, client_token: str) -> Subscription | None: ...

    def remove_subscription(self, client_token: str) -> None: ...

    def list_subscriptions(self) -> list[Subscription]: ...
