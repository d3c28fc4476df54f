"""Pytest configuration and fixtures."""
import base64
import sys
from pathlib import Path
from typing import Callable, Dict, List

import httpx
import pytest
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

# Add backend to path
backend_path = Path(__file__).parent.parent
sys.path.insert(0, str(backend_path))

from app.clients.arcium_client import ArciumClient  # noqa: E402
from app.config import GatewaySettings  # noqa: E402

BASE_URL = "https://arcium.test"


class FakeClock:
    """Monotonic clock that only moves when ``sleep`` is awaited."""

    def __init__(self) -> None:
        self.now = 1000.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def settings():
    return GatewaySettings(
        api_url=BASE_URL,
        api_key="test-api-key",
        poll_interval=5,
        poll_timeout=300,
        auth_tokens=["test-token"],
    )


@pytest.fixture
def node_private_key():
    return X25519PrivateKey.generate()


@pytest.fixture
def node_public_key(node_private_key):
    raw = node_private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
    return base64.b64encode(raw).decode("ascii")


@pytest.fixture
def make_client(settings, fake_clock):
    """Build an ArciumClient whose HTTP traffic goes to ``handler``."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> ArciumClient:
        http = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        return ArciumClient(settings, http_client=http, sleep=fake_clock.sleep, clock=fake_clock)

    return _make


class Replies:
    """Successive answers for one endpoint; the last one repeats."""

    def __init__(self, *items: object) -> None:
        self._items = list(items)
        self.calls = 0

    def next(self) -> object:
        self.calls += 1
        if len(self._items) > 1:
            return self._items.pop(0)
        return self._items[0]


def _route(responses: Dict[str, object]) -> Callable[[httpx.Request], httpx.Response]:
    """MockTransport handler answering ``"METHOD /path"`` keys.

    A value may be a JSON payload, an ``httpx.Response``, a ``Replies``
    sequence or an exception instance to raise.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        key = f"{request.method} {request.url.path}"
        if key not in responses:
            return httpx.Response(404, json={"error": f"unexpected {key}"})
        value = responses[key]
        if isinstance(value, Replies):
            value = value.next()
        if isinstance(value, Exception):
            raise value
        if isinstance(value, httpx.Response):
            return value
        return httpx.Response(200, json=value)

    return handler


@pytest.fixture
def route():
    return _route


@pytest.fixture
def replies():
    return Replies
