from typing import AsyncIterator, Optional, Protocol

from token_sync.adapters.schemas import TokenBalanceResponse, TopTokensResponse
from token_sync.models import CachedBalance, CachedTokenList, Token
from token_sync.outcome import Outcome


class TopTokensSource(Protocol):
    async def get_top_tokens(self, limit: int) -> TopTokensResponse: ...


class BalanceSource(Protocol):
    async def get_token_balance(self, contract_address: str, wallet_address: str) -> TokenBalanceResponse: ...


class TokenCache(Protocol):
    async def get_tokens(self) -> Optional[CachedTokenList]: ...

    async def replace_tokens(self, tokens: list[Token], cached_at: float) -> None: ...

    async def get_tokens_cached_at(self) -> Optional[float]: ...

    async def clear_tokens(self) -> None: ...

    async def get_balance(self, token_address: str) -> Optional[CachedBalance]: ...

    async def put_balance(self, balance: CachedBalance) -> None: ...

    async def get_balance_cached_at(self, token_address: str) -> Optional[float]: ...

    async def clear_balances(self) -> None: ...


class TokenService(Protocol):
    def get_top_tokens(self, force_refresh: bool = False) -> AsyncIterator[Outcome[list[Token]]]: ...

    def get_token_balance(self, token_address: str, force_refresh: bool = False) -> AsyncIterator[Outcome[str]]: ...

    async def clear_cache(self) -> None: ...
