# services/sync.py
from __future__ import annotations

import logging
import time
from typing import AsyncIterator, Callable, Optional

from token_sync.adapters.schemas import EthplorerPrice, EthplorerToken
from token_sync.errors import ChecksumError
from token_sync.models import CachedBalance, PriceSnapshot, Token
from token_sync.outcome import LOADING, Error, Outcome, Success, safe_api_call
from token_sync.ports import BalanceSource, TokenCache, TokenService, TopTokensSource
from token_sync.utils.checksum import to_checksum_address

log = logging.getLogger("sync")

TRUSTWALLET_LOGO_URL = (
    "https://raw.githubusercontent.com/trustwallet/assets/master/blockchains/ethereum/assets/{address}/logo.png"
)


def token_image_url(address: str) -> str:
    try:
        checksum = to_checksum_address(address)
    except ChecksumError as e:
        log.warning("no image url for %s: %s", address, e)
        return ""
    return TRUSTWALLET_LOGO_URL.format(address=checksum)


def _parse_decimals(raw: Optional[str]) -> int:
    try:
        return max(0, int(raw)) if raw is not None else 0
    except ValueError:
        return 0


def _price_to_domain(price: Optional[EthplorerPrice]) -> Optional[PriceSnapshot]:
    if price is None or price.rate is None:
        return None
    return PriceSnapshot(
        rate=price.rate,
        currency=price.currency or "USD",
        diff=price.diff,
        market_cap_usd=price.market_cap_usd,
        volume_24h=price.volume_24h,
    )


def token_to_domain(t: EthplorerToken) -> Token:
    return Token(
        address=t.address.lower(),
        name=t.name or "",
        symbol=t.symbol or "",
        decimals=_parse_decimals(t.decimals),
        image=token_image_url(t.address),
        price=_price_to_domain(t.price),
        holders_count=t.holders_count,
        total_supply=t.total_supply,
    )


class TokenSyncService(TokenService):
    """
    Cache-then-network reconciliation for the top-token list and per-token balances.

    Each call returns a fresh async generator. The first emission is the cached
    value (or Loading when there is none, or when the refresh is forced); the
    last one is the network result, persisted before it is emitted.
    """

    def __init__(
            self,
            ethplorer: TopTokensSource,
            etherscan: BalanceSource,
            cache: TokenCache,
            wallet_address: str,
            top_tokens_limit: int = 50,
            clock: Callable[[], float] = time.time,
    ) -> None:
        self._ethplorer = ethplorer
        self._etherscan = etherscan
        self._cache = cache
        self._wallet_address = wallet_address
        self._limit = top_tokens_limit
        self._clock = clock

    async def get_top_tokens(self, force_refresh: bool = False) -> AsyncIterator[Outcome[list[Token]]]:
        if not force_refresh:
            cached = await self._cache.get_tokens()
            if cached and cached.tokens:
                log.debug("top tokens: %d from cache", len(cached.tokens))
                yield Success(cached.tokens)
            else:
                yield LOADING
        else:
            yield LOADING

        result = (await safe_api_call(lambda: self._ethplorer.get_top_tokens(self._limit))).map(
            lambda resp: [token_to_domain(t) for t in resp.tokens]
        )

        if isinstance(result, Success):
            await self._cache.replace_tokens(result.value, self._clock())
            yield result
        elif isinstance(result, Error):
            yield result

    async def get_token_balance(self, token_address: str, force_refresh: bool = False) -> AsyncIterator[Outcome[str]]:
        if not force_refresh:
            cached = await self._cache.get_balance(token_address)
            if cached is not None:
                yield Success(cached.balance)
            else:
                yield LOADING
        else:
            yield LOADING

        result = (await safe_api_call(
            lambda: self._etherscan.get_token_balance(token_address, self._wallet_address)
        )).map(lambda resp: resp.result)

        if isinstance(result, Success):
            await self._cache.put_balance(CachedBalance(token_address, result.value, self._clock()))
            yield result
        elif isinstance(result, Error):
            if force_refresh or await self._cache.get_balance(token_address) is None:
                yield result
            else:
                log.info("balance %s: keeping cached value, network failed: %s", token_address, result.message)

    async def clear_cache(self) -> None:
        await self._cache.clear_tokens()
        await self._cache.clear_balances()
        log.info("token and balance cache cleared")
