import logging

from token_sync.adapters.http import get_model
from token_sync.adapters.schemas import TopTokensResponse

log = logging.getLogger("ethplorer_client")


class EthplorerClient:
    def __init__(self, api_key: str, base_url: str = "https://api.ethplorer.io", timeout: float = 30.0) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def get_top_tokens(self, limit: int = 50) -> TopTokensResponse:
        resp = await get_model(
            f"{self.base_url}/getTopTokens",
            {"limit": limit, "apiKey": self.api_key},
            TopTokensResponse,
            self.timeout,
            log,
        )
        log.info("top tokens: %d received (limit=%d)", len(resp.tokens), limit)
        return resp
