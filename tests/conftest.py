from __future__ import annotations

import pytest

from tests.fakes import CapturingSubscriptionStore, FakeTransport


@pytest.fixture()
def store() -> CapturingSubscriptionStore:
    return CapturingSubscriptionStore()


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()
