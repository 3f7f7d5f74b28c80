# src/kraken_exporter/connection/rest_client.py

import json
import logging
from typing import Any, Dict, Iterable, List, Optional

from kraken_exporter.market_data.models import (
    Asset,
    AssetPair,
    TickerInfo,
    decode_envelope,
)
from .exceptions import DecodeError
from .fetcher import HttpFetcher

logger = logging.getLogger(__name__)

KRAKEN_API_URL = "https://api.kraken.com"
API_VERSION = "0"


class KrakenPublicClient:
    """Typed access to the three public endpoints the exporter consumes."""

    def __init__(self, fetcher: HttpFetcher, api_url: str = KRAKEN_API_URL):
        self.fetcher = fetcher
        self.api_url = api_url.rstrip("/")

    def _get_url(self, endpoint: str) -> str:
        return f"{self.api_url}/{API_VERSION}/public/{endpoint}"

    def _get_json(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        body = self.fetcher.get(self._get_url(endpoint), params=params)
        try:
            return json.loads(body)
        except (ValueError, UnicodeDecodeError) as e:
            raise DecodeError(f"Invalid JSON from {endpoint}: {e}") from e

    def get_asset_pairs(self) -> Dict[str, AssetPair]:
        """Endpoint: AssetPairs"""
        return decode_envelope(self._get_json("AssetPairs"), AssetPair)

    def get_assets(self) -> Dict[str, Asset]:
        """Endpoint: Assets"""
        return decode_envelope(self._get_json("Assets"), Asset)

    def get_ticker(self, pair_codes: Iterable[str]) -> Dict[str, TickerInfo]:
        """
        Retrieves ticker snapshots for all ``pair_codes`` in a single request.
        Endpoint: Ticker
        """
        codes: List[str] = list(dict.fromkeys(code for code in pair_codes if code))
        if not codes:
            return {}

        logger.debug("Requesting tickers for %d pairs", len(codes))
        return decode_envelope(
            self._get_json("Ticker", params={"pair": ",".join(codes)}), TickerInfo
        )
