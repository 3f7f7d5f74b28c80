"""Application context helpers."""

from dataclasses import dataclass

from kraken_exporter.config import ExporterConfig
from kraken_exporter.connection.fetcher import HttpFetcher
from kraken_exporter.connection.rest_client import KrakenPublicClient
from kraken_exporter.market_data.pairs import PairStrategy, build_strategy
from kraken_exporter.market_data.publisher import TickerPublisher
from kraken_exporter.metrics import MetricsRegistry
from kraken_exporter.scheduler import CycleRunner


@dataclass
class ExporterContext:
    """Bundled services and configuration shared by the runner and the API."""

    config: ExporterConfig
    fetcher: HttpFetcher
    client: KrakenPublicClient
    strategy: PairStrategy
    registry: MetricsRegistry
    publisher: TickerPublisher
    runner: CycleRunner

    def close(self) -> None:
        self.runner.stop()
        self.fetcher.close()


def build_context(config: ExporterConfig) -> ExporterContext:
    """Instantiate the exporter services for ``config``.

    Args:
        config: Resolved exporter configuration.

    Returns:
        A fully wired :class:`ExporterContext`; no upstream request is made.
    """

    fetcher = HttpFetcher(timeout=config.timeout)
    client = KrakenPublicClient(fetcher, api_url=config.api_url)
    strategy = build_strategy(
        config.strategy,
        client,
        reference_currencies=config.reference_currencies,
        asset_pairs_ttl=config.asset_pairs_ttl,
    )
    registry = MetricsRegistry()
    publisher = TickerPublisher(
        client,
        strategy,
        registry,
        cycle_timeout=config.effective_cycle_timeout,
    )
    runner = CycleRunner(publisher, registry)

    return ExporterContext(
        config=config,
        fetcher=fetcher,
        client=client,
        strategy=strategy,
        registry=registry,
        publisher=publisher,
        runner=runner,
    )


__all__ = ["ExporterContext", "build_context"]
