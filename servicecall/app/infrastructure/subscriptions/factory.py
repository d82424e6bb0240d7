"""Subscription store factory: selects implementation from config."""
from __future__ import annotations

from servicecall.app.config.settings import Settings
from servicecall.app.ports.subscription_store import SubscriptionStore
from servicecall.app.infrastructure.subscriptions.in_memory_store import InMemorySubscriptionStore


def create_subscription_store(settings: Settings) -> SubscriptionStore:
    backend = settings.subscription_store_backend.strip().lower()

    if backend == "inmemory":
        return InMemorySubscriptionStore()

    raise ValueError(f"Unsupported subscription store backend: {backend}")
