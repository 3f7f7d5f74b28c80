from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from kraken_exporter.connection.exceptions import DecodeError, KrakenAPIError

T = TypeVar("T", bound=BaseModel)


class AssetPair(BaseModel):
    """Entry of the ``AssetPairs`` result, keyed by pair code."""

    model_config = ConfigDict(extra="ignore")

    wsname: Optional[str] = None
    base: str
    quote: str
    altname: Optional[str] = None

    def split_wsname(self) -> Optional[tuple[str, str]]:
        """Return ``(BASE, QUOTE)`` when ``wsname`` has exactly one ``/``."""
        if not self.wsname or self.wsname.count("/") != 1:
            return None
        base, quote = self.wsname.split("/")
        if not base or not quote:
            return None
        return base, quote


class Asset(BaseModel):
    """Entry of the ``Assets`` result, keyed by asset code."""

    model_config = ConfigDict(extra="ignore")

    altname: str
    aclass: Optional[str] = None
    decimals: Optional[int] = None
    display_decimals: Optional[int] = None


class TickerInfo(BaseModel):
    """Entry of the ``Ticker`` result.

    Numbers stay as raw upstream values; conversion happens per gauge so a
    single malformed value drops one sample instead of the whole document.
    """

    model_config = ConfigDict(extra="ignore")

    c: List[Any] = Field(..., min_length=1)
    v: List[Any] = Field(..., min_length=2)
    p: List[Any] = Field(..., min_length=2)
    t: List[Any] = Field(..., min_length=2)


class Envelope(BaseModel):
    """Common ``{error, result}`` wrapper of every public endpoint."""

    error: List[str] = Field(default_factory=list)
    result: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class PairLabels:
    currency: str
    reference_currency: str
    pair: str

    def is_complete(self) -> bool:
        return bool(self.currency and self.reference_currency and self.pair)

    def as_dict(self) -> Dict[str, str]:
        return asdict(self)


def decode_envelope(payload: Any, item_model: Type[T]) -> Dict[str, T]:
    """Discriminate the envelope, then decode ``result`` into ``item_model``.

    A non-empty ``error`` list raises :class:`KrakenAPIError` before
    ``result`` is looked at; structural problems raise :class:`DecodeError`.
    """
    try:
        envelope = Envelope.model_validate(payload)
    except ValidationError as e:
        raise DecodeError(f"Malformed response envelope: {e}") from e

    if envelope.error:
        raise KrakenAPIError(envelope.error)
    if envelope.result is None:
        raise DecodeError("Response envelope has neither errors nor a result")

    try:
        return TypeAdapter(Dict[str, item_model]).validate_python(envelope.result)
    except ValidationError as e:
        raise DecodeError(f"Malformed {item_model.__name__} result: {e}") from e


__all__ = [
    "AssetPair",
    "Asset",
    "TickerInfo",
    "Envelope",
    "PairLabels",
    "decode_envelope",
]
