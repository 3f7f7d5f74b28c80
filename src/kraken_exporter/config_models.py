from __future__ import annotations

from dataclasses import dataclass, field

from kraken_exporter.connection.rest_client import KRAKEN_API_URL
from kraken_exporter.market_data.pairs import DEFAULT_REFERENCE_CURRENCIES

DEFAULT_PORT = 8080
DEFAULT_TIMEOUT_SECONDS = 60.0


@dataclass
class AuthConfig:
    enabled: bool = False
    token: str = ""


@dataclass
class ExporterConfig:
    port: int = DEFAULT_PORT
    host: str = "0.0.0.0"
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    interval: float = 60.0
    mode: str = "pull"
    strategy: str = "asset_pairs"
    api_url: str = KRAKEN_API_URL
    reference_currencies: list[str] = field(
        default_factory=lambda: list(DEFAULT_REFERENCE_CURRENCIES)
    )
    asset_pairs_ttl: float = 0.0
    cycle_timeout: float = 0.0
    log_level: str = "INFO"
    auth: AuthConfig = field(default_factory=AuthConfig)

    @property
    def effective_interval(self) -> float:
        """Pull interval, never shorter than the request timeout."""
        return max(self.interval, self.timeout)

    @property
    def effective_cycle_timeout(self) -> float:
        """Per-cycle deadline; defaults to one timeout per upstream request."""
        return self.cycle_timeout if self.cycle_timeout > 0 else self.timeout * 3
