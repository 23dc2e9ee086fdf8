from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from token_sync.outcome import LOADING, Outcome


@dataclass(frozen=True)
class PriceSnapshot:
    rate: float
    currency: str = "USD"
    diff: Optional[float] = None
    market_cap_usd: Optional[float] = None
    volume_24h: Optional[float] = None


@dataclass(frozen=True)
class Token:
    address: str
    name: str
    symbol: str
    decimals: int
    image: str = ""
    price: Optional[PriceSnapshot] = None
    holders_count: Optional[int] = None
    total_supply: Optional[str] = None  # arbitrary precision, never parsed


@dataclass(frozen=True)
class CachedTokenList:
    tokens: list[Token]
    cached_at: float


@dataclass(frozen=True)
class CachedBalance:
    token_address: str
    balance: str  # smallest-unit integer as decimal string
    cached_at: float


@dataclass(frozen=True)
class TokenViewState:
    """One row of the token list as the orchestrator exposes it."""
    address: str
    name: str
    symbol: str
    decimals: int
    image: str
    balance: Outcome[str] = LOADING
    last_updated: float = 0.0
    price_rate: Optional[float] = None
    price_currency: Optional[str] = None
    price_diff: Optional[float] = None
    market_cap_usd: Optional[float] = None
    volume_24h: Optional[float] = None
    holders_count: Optional[int] = None
    total_supply: Optional[str] = None

    @classmethod
    def from_token(cls, token: Token, now: float) -> "TokenViewState":
        price = token.price
        return cls(
            address=token.address,
            name=token.name,
            symbol=token.symbol,
            decimals=token.decimals,
            image=token.image,
            balance=LOADING,
            last_updated=now,
            price_rate=price.rate if price else None,
            price_currency=price.currency if price else None,
            price_diff=price.diff if price else None,
            market_cap_usd=price.market_cap_usd if price else None,
            volume_24h=price.volume_24h if price else None,
            holders_count=token.holders_count,
            total_supply=token.total_supply,
        )

    def matches(self, query: str) -> bool:
        q = query.lower()
        return q in self.name.lower() or q in self.symbol.lower()
