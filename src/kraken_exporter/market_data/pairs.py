# src/kraken_exporter/market_data/pairs.py

import logging
import time
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from kraken_exporter.connection.rest_client import KrakenPublicClient
from kraken_exporter.logging_config import structured_log_extra
from .models import AssetPair, PairLabels

logger = logging.getLogger(__name__)

DEFAULT_REFERENCE_CURRENCIES = (
    "AUD",
    "CAD",
    "BTC",
    "ETH",
    "EUR",
    "GBP",
    "JPY",
    "USD",
    "XBT",
    "USDT",
    "USDC",
)

# Kraken prefixes legacy crypto codes with "X" and fiat codes with "Z".
CLASS_PREFIXES = ("X", "Z")


# Only 4-character codes are legacy-prefixed; stripping unconditionally
# would turn USDT into SDT and USD into SD.
def strip_class_prefix(code: str) -> str:
    """
    Removes the single leading class-prefix letter from a 4-character legacy
    asset code (``ZUSD`` -> ``USD``, ``XXBT`` -> ``XBT``). Any other code is
    returned unchanged (``USD``, ``USDT``, ``DOT``).
    """
    if len(code) == 4 and code[0] in CLASS_PREFIXES:
        return code[1:]
    return code


class PairStrategy:
    """
    Decides which pair codes to query and how each maps onto gauge labels.

    ``discover`` fetches the upstream documents for the current cycle and
    returns the deduplicated query set; ``resolve`` maps a returned ticker
    code onto labels, or ``None`` when the code is unknown.
    """

    name = "base"

    def __init__(
        self,
        client: KrakenPublicClient,
        asset_pairs_ttl: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.asset_pairs_ttl = asset_pairs_ttl
        self._clock = clock
        self._asset_pairs: Dict[str, AssetPair] = {}
        self._fetched_at: Optional[float] = None

    def _load_asset_pairs(self) -> Dict[str, AssetPair]:
        now = self._clock()
        if (
            self.asset_pairs_ttl > 0
            and self._fetched_at is not None
            and now - self._fetched_at < self.asset_pairs_ttl
        ):
            logger.debug("Using cached asset pairs (%d entries)", len(self._asset_pairs))
            return self._asset_pairs

        self._asset_pairs = self.client.get_asset_pairs()
        self._fetched_at = now
        logger.info(
            "Fetched %d asset pairs",
            len(self._asset_pairs),
            extra=structured_log_extra(event="asset_pairs_fetched", count=len(self._asset_pairs)),
        )
        return self._asset_pairs

    def invalidate(self) -> None:
        """Forget cached asset pairs so the next cycle refetches them."""
        self._fetched_at = None

    def discover(self) -> List[str]:
        raise NotImplementedError

    def resolve(self, pair_code: str) -> Optional[PairLabels]:
        pair = self._asset_pairs.get(pair_code)
        if pair is None:
            self.invalidate()
            return None
        labels = self._labels_for(pair)
        if labels is None or not labels.is_complete():
            return None
        return labels

    def _labels_for(self, pair: AssetPair) -> Optional[PairLabels]:
        raise NotImplementedError

    @staticmethod
    def _queryable(codes: Iterable[str], asset_pairs: Dict[str, AssetPair]) -> List[str]:
        selected: List[str] = []
        for code in dict.fromkeys(codes):
            pair = asset_pairs.get(code)
            if pair is None:
                continue
            if pair.split_wsname() is None:
                logger.debug("Skipping pair %s without a usable wsname (%r)", code, pair.wsname)
                continue
            selected.append(code)
        return selected


class AssetPairsStrategy(PairStrategy):
    """
    Queries every key of ``AssetPairs``. Labels come straight from the pair
    entry: ``currency`` is the exchange ``base`` code verbatim,
    ``reference_currency`` is ``quote`` without its class prefix and
    ``pair`` is ``wsname``.
    """

    name = "asset_pairs"

    def discover(self) -> List[str]:
        asset_pairs = self._load_asset_pairs()
        return self._queryable(asset_pairs.keys(), asset_pairs)

    def _labels_for(self, pair: AssetPair) -> Optional[PairLabels]:
        if pair.split_wsname() is None:
            return None
        return PairLabels(
            currency=pair.base,
            reference_currency=strip_class_prefix(pair.quote),
            pair=pair.wsname or "",
        )


class ReferenceListStrategy(PairStrategy):
    """
    Crosses every asset ``altname`` with a fixed list of reference
    currencies. Candidate codes ``AR``, ``XAXR`` and ``XAZR`` are kept when
    present in ``AssetPairs``; labels are the two halves of ``wsname``.
    """

    name = "reference_list"

    def __init__(
        self,
        client: KrakenPublicClient,
        reference_currencies: Sequence[str] = DEFAULT_REFERENCE_CURRENCIES,
        asset_pairs_ttl: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(client, asset_pairs_ttl=asset_pairs_ttl, clock=clock)
        self.reference_currencies = tuple(reference_currencies)

    def candidate_codes(self, altnames: Iterable[str]) -> List[str]:
        candidates: List[str] = []
        for altname in altnames:
            for reference in self.reference_currencies:
                candidates.extend(
                    (
                        f"{altname}{reference}",
                        f"X{altname}X{reference}",
                        f"X{altname}Z{reference}",
                    )
                )
        return candidates

    def discover(self) -> List[str]:
        asset_pairs = self._load_asset_pairs()
        assets = self.client.get_assets()
        altnames = [asset.altname for asset in assets.values() if asset.altname]
        return self._queryable(self.candidate_codes(altnames), asset_pairs)

    def _labels_for(self, pair: AssetPair) -> Optional[PairLabels]:
        halves = pair.split_wsname()
        if halves is None:
            return None
        base, quote = halves
        return PairLabels(currency=base, reference_currency=quote, pair=pair.wsname or "")


STRATEGIES = {
    AssetPairsStrategy.name: AssetPairsStrategy,
    ReferenceListStrategy.name: ReferenceListStrategy,
}


def build_strategy(
    name: str,
    client: KrakenPublicClient,
    *,
    reference_currencies: Sequence[str] = DEFAULT_REFERENCE_CURRENCIES,
    asset_pairs_ttl: float = 0.0,
) -> PairStrategy:
    """Instantiate the discovery strategy configured under ``name``."""
    if name == ReferenceListStrategy.name:
        return ReferenceListStrategy(
            client,
            reference_currencies=reference_currencies,
            asset_pairs_ttl=asset_pairs_ttl,
        )
    if name == AssetPairsStrategy.name:
        return AssetPairsStrategy(client, asset_pairs_ttl=asset_pairs_ttl)
    raise ValueError(f"Unknown pair strategy: {name}")
