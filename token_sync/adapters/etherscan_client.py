import logging
from typing import Optional

from token_sync.adapters.http import get_model
from token_sync.adapters.schemas import TokenBalanceResponse
from token_sync.errors import UpstreamRejectedError
from token_sync.utils.rate_limiter import RateLimiter

log = logging.getLogger("etherscan_client")


class EtherscanClient:
    def __init__(
            self,
            api_key: str,
            chain_id: int = 1,
            base_url: str = "https://api.etherscan.io",
            limiter: Optional[RateLimiter] = None,
            timeout: float = 30.0,
    ) -> None:
        self.api_key = api_key
        self.chain_id = chain_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        # free tier allows 5 calls/s, stay one below
        self._limiter = limiter or RateLimiter(4)

    async def get_token_balance(self, contract_address: str, wallet_address: str) -> TokenBalanceResponse:
        params = {
            "chainid": self.chain_id,
            "module": "account",
            "action": "tokenbalance",
            "contractaddress": contract_address,
            "address": wallet_address,
            "tag": "latest",
            "apikey": self.api_key,
        }
        await self._limiter.acquire()
        resp = await get_model(f"{self.base_url}/v2/api", params, TokenBalanceResponse, self.timeout, log)
        if resp.status != 1:
            raise UpstreamRejectedError(resp.message or "NOTOK", resp.result)
        return resp
