"""Shared fixtures: upstream payloads and a routed fetcher double."""
from __future__ import annotations

import copy
import importlib.util
import json
from typing import Any, Dict, List, Optional, Tuple

import pytest

REQUIRED_MODULES = [
    "fastapi",
    "pydantic",
    "prometheus_client",
    "requests",
    "starlette",
]

missing = [mod for mod in REQUIRED_MODULES if importlib.util.find_spec(mod) is None]
if missing:
    pytest.skip(
        "Missing optional dependencies: " + ", ".join(sorted(missing)),
        allow_module_level=True,
    )

from kraken_exporter.connection.rest_client import KrakenPublicClient  # noqa: E402
from kraken_exporter.metrics import MetricsRegistry  # noqa: E402

ASSET_PAIRS_RESPONSE: Dict[str, Any] = {
    "error": [],
    "result": {
        "XXBTZUSD": {
            "altname": "XBTUSD",
            "wsname": "XBT/USD",
            "aclass_base": "currency",
            "base": "XXBT",
            "aclass_quote": "currency",
            "quote": "ZUSD",
            "pair_decimals": 1,
            "lot_decimals": 8,
            "ordermin": "0.0001",
            "status": "online",
        },
        "XETHZEUR": {
            "altname": "ETHEUR",
            "wsname": "ETH/EUR",
            "base": "XETH",
            "quote": "ZEUR",
            "status": "online",
        },
        "USDTUSD": {
            "altname": "USDTUSD",
            "wsname": "USDT/USD",
            "base": "USDT",
            "quote": "ZUSD",
            "status": "online",
        },
    },
}

TICKER_RESPONSE: Dict[str, Any] = {
    "error": [],
    "result": {
        "XXBTZUSD": {
            "a": ["30000.2", "1", "1.000"],
            "b": ["30000.0", "2", "2.000"],
            "c": ["30000.1", "0.01"],
            "v": ["1.0", "2.0"],
            "p": ["29500", "29400"],
            "t": [10, 20],
            "l": ["29000", "28900"],
            "h": ["31000", "31100"],
            "o": "29800",
        },
        "XETHZEUR": {
            "c": ["1800.5", "0.5"],
            "v": ["100.25", "250.5"],
            "p": ["1790.1", "1785.3"],
            "t": [300, 700],
        },
        "USDTUSD": {
            "c": ["1.0001", "1000"],
            "v": ["5000000", "9000000"],
            "p": ["1.0000", "0.9999"],
            "t": [1500, 4200],
        },
    },
}

ASSETS_RESPONSE: Dict[str, Any] = {
    "error": [],
    "result": {
        "XXBT": {"aclass": "currency", "altname": "XBT", "decimals": 10, "display_decimals": 5},
        "XETH": {"aclass": "currency", "altname": "ETH", "decimals": 10, "display_decimals": 5},
        "USDT": {"aclass": "currency", "altname": "USDT", "decimals": 8, "display_decimals": 4},
        "ZUSD": {"aclass": "currency", "altname": "USD", "decimals": 4, "display_decimals": 2},
        "ZEUR": {"aclass": "currency", "altname": "EUR", "decimals": 4, "display_decimals": 2},
    },
}


class RoutedFetcher:
    """Fetcher double answering by endpoint name (``AssetPairs``, ``Ticker``...)."""

    def __init__(self, routes: Dict[str, Any]):
        self.routes = routes
        self.calls: List[Tuple[str, Optional[dict]]] = []

    def get(self, url: str, params: Optional[dict] = None) -> bytes:
        self.calls.append((url, params))
        endpoint = url.rsplit("/", 1)[-1]
        outcome = self.routes[endpoint]
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, bytes):
            return outcome
        return json.dumps(outcome).encode()

    def endpoints_called(self) -> List[str]:
        return [url.rsplit("/", 1)[-1] for url, _ in self.calls]

    def close(self) -> None:
        pass


@pytest.fixture(autouse=True)
def _clear_log_level(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)


@pytest.fixture
def asset_pairs_response() -> Dict[str, Any]:
    return copy.deepcopy(ASSET_PAIRS_RESPONSE)


@pytest.fixture
def ticker_response() -> Dict[str, Any]:
    return copy.deepcopy(TICKER_RESPONSE)


@pytest.fixture
def assets_response() -> Dict[str, Any]:
    return copy.deepcopy(ASSETS_RESPONSE)


@pytest.fixture
def fetcher(asset_pairs_response, ticker_response, assets_response) -> RoutedFetcher:
    return RoutedFetcher(
        {
            "AssetPairs": asset_pairs_response,
            "Ticker": ticker_response,
            "Assets": assets_response,
        }
    )


@pytest.fixture
def public_client(fetcher: RoutedFetcher) -> KrakenPublicClient:
    return KrakenPublicClient(fetcher)  # type: ignore[arg-type]


@pytest.fixture
def registry() -> MetricsRegistry:
    return MetricsRegistry()


@pytest.fixture
def make_fetcher():
    """Factory for :class:`RoutedFetcher` instances with custom routes."""

    return RoutedFetcher
