"""Pytest configuration and fixtures."""

import json
import os
from typing import Callable, Optional, Union

import httpx
import pytest
from bip_utils import Bech32Encoder

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["NETWORK"] = "mainnet"
os.environ["DEBUG"] = "true"

from chainsend.config import Settings
from chainsend.registry import default_registry
from chainsend.tx.factory import reset_handler_factory
from chainsend.wallet import ActiveWallet, SignDoc, WalletType


def make_address(prefix: str, seed: int = 1) -> str:
    """Valid bech32 address with a recognizable payload."""
    return Bech32Encoder.Encode(prefix, bytes([seed]) * 20)


class FakeSigningWallet:
    """SigningWallet that records what it was asked to sign."""

    def __init__(self, error: Optional[Exception] = None, signature: bytes = b"signed-tx"):
        self.error = error
        self.signature = signature
        self.docs: list[SignDoc] = []

    async def sign(self, doc: SignDoc) -> bytes:
        self.docs.append(doc)
        if self.error:
            raise self.error
        return self.signature


Responder = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeChainApi:
    """Routes requests by (method, url) to canned responses.

    Several responses for one route are served in order; the last one
    repeats. Unknown routes answer 404.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], list[Responder]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, url: str, *responses: Responder) -> "FakeChainApi":
        self.routes[(method.upper(), url)] = list(responses)
        return self

    def get(self, url: str, payload: Optional[dict] = None, status: int = 200) -> "FakeChainApi":
        return self.add("GET", url, httpx.Response(status, json=payload or {}))

    def post(self, url: str, payload: Optional[dict] = None, status: int = 200) -> "FakeChainApi":
        return self.add("POST", url, httpx.Response(status, json=payload or {}))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responses = self.routes.get((request.method, str(request.url)))
        if not responses:
            return httpx.Response(404, json={"message": "not found"})

        response = responses.pop(0) if len(responses) > 1 else responses[0]
        if callable(response) and not isinstance(response, httpx.Response):
            return response(request)
        return response

    def calls(self, method: str, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and str(r.url) == url]

    def last_json(self, method: str, url: str) -> dict:
        return json.loads(self.calls(method, url)[-1].content)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset process-wide instances between tests."""
    reset_handler_factory()
    yield
    reset_handler_factory()


@pytest.fixture
def settings() -> Settings:
    """Mainnet settings with fast polling."""
    return Settings(
        network="mainnet",
        locale="en",
        poll_interval_seconds=0.01,
        poll_timeout_seconds=0.1,
    )


@pytest.fixture
def registry(settings):
    """Built-in chain registry."""
    return default_registry(settings)


@pytest.fixture
def fake_api() -> FakeChainApi:
    return FakeChainApi()


@pytest.fixture
def signing_wallet() -> FakeSigningWallet:
    return FakeSigningWallet()


@pytest.fixture
def addresses() -> dict[str, str]:
    """One address of the user per chain."""
    return {
        "cosmos": make_address("cosmos", 1),
        "osmosis": make_address("osmo", 1),
        "juno": make_address("juno", 1),
        "stride": make_address("stride", 1),
        "secret": make_address("secret", 1),
        "thorchain": make_address("thor", 1),
        "mayachain": make_address("maya", 1),
        "seiDevnet": make_address("sei", 1),
        "evmos": make_address("evmos", 1),
        "injective": make_address("inj", 1),
    }


@pytest.fixture
def active_wallet(addresses) -> ActiveWallet:
    return ActiveWallet(
        id="wallet-1",
        name="Main",
        wallet_type=WalletType.SEED_PHRASE,
        addresses=dict(addresses),
    )
