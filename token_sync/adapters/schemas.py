"""
Wire models for the two upstreams.

Ethplorer reports "price" either as an object or as the literal `false`
when no price is known. Both `false` and `null` decode to None, and None is
written back as `false`.

Apart from `address`, a token field holding a value of the wrong JSON type
decodes to None, so one odd record never fails the whole list.
"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, FieldSerializationInfo, field_serializer, field_validator


def _text_or_none(v: Any) -> Optional[str]:
    return v if isinstance(v, str) else None


def _float_or_none(v: Any) -> Optional[float]:
    if isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        return float(v)
    if isinstance(v, str):
        try:
            return float(v)
        except ValueError:
            return None
    return None


def _int_or_none(v: Any) -> Optional[int]:
    if isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    if isinstance(v, float):
        return int(v) if v.is_integer() else None
    if isinstance(v, str) and v.strip().isdigit():
        return int(v.strip())
    return None


class EthplorerPrice(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    rate: Optional[float] = None
    currency: Optional[str] = None
    diff: Optional[float] = None
    market_cap_usd: Optional[float] = Field(default=None, alias="marketCapUsd")
    volume_24h: Optional[float] = Field(default=None, alias="volume24h")

    @field_validator("rate", "diff", "market_cap_usd", "volume_24h", mode="before")
    @classmethod
    def _lenient_number(cls, v: Any) -> Optional[float]:
        return _float_or_none(v)

    @field_validator("currency", mode="before")
    @classmethod
    def _lenient_currency(cls, v: Any) -> Optional[str]:
        return _text_or_none(v)


class EthplorerToken(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    address: str
    name: Optional[str] = None
    symbol: Optional[str] = None
    decimals: Optional[str] = None
    image: Optional[str] = None
    price: Optional[EthplorerPrice] = None
    holders_count: Optional[int] = Field(default=None, alias="holdersCount")
    total_supply: Optional[str] = Field(default=None, alias="totalSupply")

    @field_validator("name", "symbol", "image", mode="before")
    @classmethod
    def _lenient_text(cls, v: Any) -> Optional[str]:
        return _text_or_none(v)

    @field_validator("holders_count", mode="before")
    @classmethod
    def _lenient_count(cls, v: Any) -> Optional[int]:
        return _int_or_none(v)

    @field_validator("price", mode="before")
    @classmethod
    def _decode_price(cls, v: Any) -> Any:
        # discriminate on the raw JSON type before any structural parsing
        if isinstance(v, (dict, EthplorerPrice)):
            return v
        return None

    @field_validator("decimals", "total_supply", mode="before")
    @classmethod
    def _numbers_as_text(cls, v: Any) -> Optional[str]:
        if isinstance(v, bool):
            return None
        if isinstance(v, int):
            return str(v)
        if isinstance(v, float):
            return str(int(v)) if v.is_integer() else str(v)
        return _text_or_none(v)

    @field_serializer("price")
    def _encode_price(self, price: Optional[EthplorerPrice], info: FieldSerializationInfo) -> Any:
        if price is None:
            return False
        return price.model_dump(mode=info.mode, by_alias=info.by_alias)


class TopTokensResponse(BaseModel):
    tokens: list[EthplorerToken]


class TokenBalanceResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: int
    message: str = ""
    result: str
