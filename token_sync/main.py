import argparse
import asyncio
import logging
from pathlib import Path

from core.log import setup_logging
from token_sync.adapters.etherscan_client import EtherscanClient
from token_sync.adapters.ethplorer_client import EthplorerClient
from token_sync.config import AppConfig, load_env
from token_sync.models import TokenViewState
from token_sync.outcome import Error, Success
from token_sync.ports import TokenCache
from token_sync.repositories.cache_fs import FileTokenCache
from token_sync.repositories.cache_sqlite import SQLiteTokenCache
from token_sync.services.orchestrator import ErrorDisplay, TokenFetchOrchestrator
from token_sync.services.sync import TokenSyncService
from token_sync.utils.formatting import format_large_number, format_timestamp
from token_sync.utils.rate_limiter import RateLimiter

log = logging.getLogger("main")


def build_cache(cfg: AppConfig) -> TokenCache:
    if cfg.cache_backend == "fs":
        return FileTokenCache(Path(cfg.cache_path))
    if cfg.cache_backend == "sqlite":
        return SQLiteTokenCache(cfg.cache_path)
    raise ValueError(f"unknown CACHE_BACKEND {cfg.cache_backend!r} (expected 'sqlite' or 'fs')")


def build_service(cfg: AppConfig, cache: TokenCache) -> TokenSyncService:
    ethplorer = EthplorerClient(cfg.ethplorer_api_key, base_url=cfg.ethplorer_url, timeout=cfg.http_timeout)
    etherscan = EtherscanClient(
        cfg.etherscan_api_key,
        chain_id=cfg.chain_id,
        base_url=cfg.etherscan_url,
        limiter=RateLimiter(cfg.etherscan_rps),
        timeout=cfg.http_timeout,
    )
    return TokenSyncService(
        ethplorer=ethplorer,
        etherscan=etherscan,
        cache=cache,
        wallet_address=cfg.wallet_address,
        top_tokens_limit=cfg.top_tokens_limit,
    )


def format_row(t: TokenViewState) -> str:
    if isinstance(t.balance, Success):
        balance = t.balance.value
    elif isinstance(t.balance, Error):
        balance = f"error: {t.balance.message}"
    else:
        balance = "..."
    price = f"{t.price_rate:.4f} {t.price_currency}" if t.price_rate is not None else "-"
    mcap = format_large_number(t.market_cap_usd) if t.market_cap_usd is not None else "-"
    holders = f"{t.holders_count:,}" if t.holders_count is not None else "-"
    return (f"{t.symbol:<10} {t.name[:28]:<28} balance={balance:<24} price={price:<18} "
            f"mcap={mcap:<10} holders={holders:<12} updated={format_timestamp(t.last_updated)}")


async def run(cfg: AppConfig, search: str, refresh: bool, clear_cache: bool) -> int:
    if not cfg.wallet_address:
        log.warning("WALLET_ADDRESS is not set, balance lookups will be rejected upstream")

    cache = build_cache(cfg)
    service = build_service(cfg, cache)
    orchestrator = TokenFetchOrchestrator(service, debounce=cfg.search_debounce)

    try:
        if clear_cache:
            await orchestrator.clear_cache()
        else:
            orchestrator.load_token_list(force_refresh=refresh)
        await orchestrator.wait_idle()

        if orchestrator.error_display is ErrorDisplay.FULL_SCREEN:
            log.error("Could not load tokens: %s", orchestrator.error)
            return 1
        if orchestrator.error_display is ErrorDisplay.BANNER:
            log.warning("Showing cached tokens, refresh failed: %s", orchestrator.error)

        if search:
            orchestrator.update_search_text(search)
            await orchestrator.wait_idle()
            rows = orchestrator.displayed_tokens
        else:
            rows = orchestrator.tokens

        for t in rows:
            print(format_row(t))
        log.info("%d token(s) shown (%d loaded)", len(rows), len(orchestrator.tokens))
        return 0
    finally:
        await orchestrator.close()
        if isinstance(cache, SQLiteTokenCache):
            cache.close()


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Top ERC-20 tokens with cached wallet balances")
    p.add_argument("--search", default="", help="filter by name or symbol and fetch balances for matches")
    p.add_argument("--refresh", action="store_true", help="ignore cached token list for the first emission")
    p.add_argument("--clear-cache", action="store_true", help="purge cached tokens and balances before loading")
    p.add_argument("--debug", action="store_true")
    p.add_argument("--log-file", default=None)
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    config = load_env()
    setup_logging(debug=args.debug or config.debug, to_file=args.log_file)
    return asyncio.run(run(config, args.search, args.refresh, args.clear_cache))


if __name__ == "__main__":
    raise SystemExit(main())
