import os
from pydantic import BaseModel, Field


class AppConfig(BaseModel):
    ethplorer_url: str = Field(default_factory=lambda: os.getenv("ETHPLORER_URL", "https://api.ethplorer.io"))
    ethplorer_api_key: str = Field(default_factory=lambda: os.getenv("ETHPLORER_KEY", "freekey"))
    top_tokens_limit: int = Field(default_factory=lambda: int(os.getenv("TOP_TOKENS_LIMIT", "50")))

    etherscan_url: str = Field(default_factory=lambda: os.getenv("ETHERSCAN_URL", "https://api.etherscan.io"))
    etherscan_api_key: str = Field(default_factory=lambda: os.getenv("ETHERSCAN_KEY", ""))
    chain_id: int = Field(default_factory=lambda: int(os.getenv("CHAIN_ID", "1")))
    etherscan_rps: int = Field(default_factory=lambda: int(os.getenv("ETHERSCAN_RPS", "4")))

    wallet_address: str = Field(default_factory=lambda: os.getenv("WALLET_ADDRESS", "").strip())

    cache_backend: str = Field(default_factory=lambda: os.getenv("CACHE_BACKEND", "sqlite").lower())
    cache_path: str = Field(default_factory=lambda: os.getenv("CACHE_PATH", "token_cache.sqlite3"))

    http_timeout: float = Field(default_factory=lambda: float(os.getenv("HTTP_TIMEOUT", "30.0")))
    search_debounce: float = Field(default_factory=lambda: float(os.getenv("SEARCH_DEBOUNCE", "0.3")))
    debug: bool = Field(default_factory=lambda: os.getenv("DEBUG", "false").lower() != "false")


def load_env() -> AppConfig:
    from dotenv import load_dotenv
    load_dotenv()
    return AppConfig()
