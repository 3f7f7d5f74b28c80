"""Shared fixtures for FastAPI route tests."""

from __future__ import annotations

import pytest
from starlette.testclient import TestClient

from kraken_exporter.config import AuthConfig, ExporterConfig
from kraken_exporter.connection.rest_client import KrakenPublicClient
from kraken_exporter.context import ExporterContext
from kraken_exporter.market_data.pairs import AssetPairsStrategy
from kraken_exporter.market_data.publisher import TickerPublisher
from kraken_exporter.metrics import MetricsRegistry
from kraken_exporter.scheduler import CycleRunner
from kraken_exporter.web.api import create_api


def build_test_context(fetcher, *, mode: str = "pull", auth: AuthConfig | None = None) -> ExporterContext:
    """Construct an :class:`ExporterContext` backed by a fetcher double."""

    config = ExporterConfig(mode=mode, auth=auth or AuthConfig())
    client = KrakenPublicClient(fetcher)
    strategy = AssetPairsStrategy(client)
    registry = MetricsRegistry()
    publisher = TickerPublisher(client, strategy, registry)

    return ExporterContext(
        config=config,
        fetcher=fetcher,
        client=client,
        strategy=strategy,
        registry=registry,
        publisher=publisher,
        runner=CycleRunner(publisher, registry),
    )


@pytest.fixture
def exporter_mode(request: pytest.FixtureRequest) -> str:
    """Per-test override for the refresh mode."""

    return getattr(request, "param", "pull")


@pytest.fixture
def auth_config(request: pytest.FixtureRequest) -> AuthConfig:
    """Per-test override for root endpoint auth."""

    return getattr(request, "param", AuthConfig())


@pytest.fixture
def mock_context(fetcher, exporter_mode: str, auth_config: AuthConfig) -> ExporterContext:
    return build_test_context(fetcher, mode=exporter_mode, auth=auth_config)


@pytest.fixture
def client(mock_context: ExporterContext) -> TestClient:
    """A FastAPI test client wired with a test :class:`ExporterContext`."""

    app = create_api(mock_context)
    client = TestClient(app)
    client.context = mock_context  # type: ignore[attr-defined]
    return client
