# src/kraken_exporter/market_data/publisher.py

import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from kraken_exporter.connection.exceptions import CycleTimeoutError
from kraken_exporter.connection.rest_client import KrakenPublicClient
from kraken_exporter.logging_config import structured_log_extra
from kraken_exporter.metrics import MetricsRegistry
from .models import PairLabels, TickerInfo
from .pairs import PairStrategy

logger = logging.getLogger(__name__)

LABEL_NAMES = ("currency", "reference_currency", "pair")

# (metric name, ticker field, index, help text)
GAUGES: Tuple[Tuple[str, str, int, str], ...] = (
    ("exchange_rate", "c", 0, "Last trade closed price"),
    ("exchange_volume", "v", 0, "Volume traded today"),
    ("exchange_volume_last_day", "v", 1, "Volume traded over the last 24 hours"),
    ("exchange_volume_daily", "v", 1, "Volume traded over the last 24 hours"),
    ("exchange_rate_average", "p", 0, "Volume weighted average price today"),
    ("exchange_rate_average_last_day", "p", 1, "Volume weighted average price over the last 24 hours"),
    ("exchange_trades", "t", 0, "Number of trades today"),
    ("exchange_trades_last_day", "t", 1, "Number of trades over the last 24 hours"),
    ("exchange_trades_daily", "t", 1, "Number of trades over the last 24 hours"),
)


class CycleState(str, Enum):
    IDLE = "idle"
    DISCOVERING_PAIRS = "discovering_pairs"
    FETCHING_TICKERS = "fetching_tickers"
    PUBLISHING = "publishing"
    FAILED = "failed"


@dataclass
class CycleResult:
    pairs_queried: int = 0
    tickers_received: int = 0
    samples_written: int = 0
    samples_dropped: int = 0
    duration: float = 0.0


def parse_decimal(raw: Any) -> Optional[float]:
    """Return ``raw`` as a finite, non-negative float or ``None``."""
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


def parse_count(raw: Any) -> Optional[float]:
    """Return a non-negative integer trade count as a float or ``None``."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return float(raw) if raw >= 0 else None
    try:
        value = int(str(raw).strip())
    except ValueError:
        return None
    return float(value) if value >= 0 else None


class TickerPublisher:
    """
    Runs generation cycles: discover pairs, fetch their tickers in one
    request, then write every field into the registry as labeled gauges.
    """

    def __init__(
        self,
        client: KrakenPublicClient,
        strategy: PairStrategy,
        registry: MetricsRegistry,
        cycle_timeout: float = 180.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.strategy = strategy
        self.registry = registry
        self.cycle_timeout = cycle_timeout
        self._clock = clock
        self.state = CycleState.IDLE

        for name, _field, _index, documentation in GAUGES:
            self.registry.register_gauge(name, documentation, LABEL_NAMES)

    def generate(self) -> CycleResult:
        """
        Executes one full cycle. Discovery and ticker errors put the cycle in
        ``FAILED`` and propagate; gauges written before a failure are kept.

        ``cycle_timeout`` is checked between upstream calls, not during them;
        a single blocked call is bounded by the fetcher timeout instead.
        """
        started = self._clock()
        result = CycleResult()

        try:
            self.state = CycleState.DISCOVERING_PAIRS
            pair_codes = self.strategy.discover()
            result.pairs_queried = len(pair_codes)
            self._check_deadline(started)

            self.state = CycleState.FETCHING_TICKERS
            tickers = self.client.get_ticker(pair_codes)
            result.tickers_received = len(tickers)
            self._check_deadline(started)
        except Exception:
            self.state = CycleState.FAILED
            raise

        self.state = CycleState.PUBLISHING
        for pair_code, info in tickers.items():
            written, dropped = self._publish(pair_code, info)
            result.samples_written += written
            result.samples_dropped += dropped

        self.registry.record_dropped_samples(result.samples_dropped)
        result.duration = self._clock() - started
        self.state = CycleState.IDLE

        logger.info(
            "Published %d samples for %d pairs",
            result.samples_written,
            result.tickers_received,
            extra=structured_log_extra(
                event="cycle_published",
                pairs_queried=result.pairs_queried,
                samples_dropped=result.samples_dropped,
                duration=round(result.duration, 3),
            ),
        )
        return result

    def _check_deadline(self, started: float) -> None:
        if self.cycle_timeout <= 0:
            return
        elapsed = self._clock() - started
        if elapsed > self.cycle_timeout:
            raise CycleTimeoutError(elapsed, self.cycle_timeout)

    def _publish(self, pair_code: str, info: TickerInfo) -> Tuple[int, int]:
        labels: Optional[PairLabels] = self.strategy.resolve(pair_code)
        if labels is None:
            logger.warning(
                "No asset pair entry resolves ticker %s; dropping sample",
                pair_code,
                extra=structured_log_extra(event="ticker_unresolved", pair=pair_code),
            )
            return 0, len(GAUGES)

        label_values: Dict[str, str] = labels.as_dict()
        written = 0
        dropped = 0
        for name, field, index, _documentation in GAUGES:
            values: List[Any] = getattr(info, field)
            raw = values[index]
            value = parse_count(raw) if field == "t" else parse_decimal(raw)
            if value is None:
                logger.warning(
                    "Skipping %s for %s: unparseable value %r",
                    name,
                    pair_code,
                    raw,
                    extra=structured_log_extra(event="sample_dropped", pair=labels.pair, metric=name),
                )
                dropped += 1
                continue
            self.registry.set(name, label_values, value)
            written += 1
        return written, dropped
