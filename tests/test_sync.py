from __future__ import annotations

import aiohttp
import pytest

from fakes import FakeEtherscan, FakeEthplorer, make_tokens
from token_sync.errors import UpstreamHTTPError
from token_sync.models import CachedBalance, PriceSnapshot
from token_sync.outcome import LOADING, NETWORK_ERROR_MESSAGE, Error, Success
from token_sync.services.sync import TokenSyncService

WALLET = "0x000000000000000000000000000000000000dEaD"

WIRE_TOKENS = [
    {"address": "0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed", "name": "Alpha", "symbol": "ALP", "decimals": "18",
     "price": {"rate": 2.0, "currency": "USD", "diff": 1.5, "marketCapUsd": 1e9, "volume24h": 5e6},
     "holdersCount": 10, "totalSupply": "1000"},
    {"address": "0xfb6916095ca1df60bb79ce92ce3ea74c37c5d359", "name": "Beta", "symbol": "BET", "decimals": "6",
     "price": False},
]


async def collect(stream) -> list:
    return [o async for o in stream]


def make_service(cache, ethplorer=None, etherscan=None, now=1000.0) -> TokenSyncService:
    return TokenSyncService(
        ethplorer=ethplorer or FakeEthplorer(WIRE_TOKENS),
        etherscan=etherscan or FakeEtherscan({}),
        cache=cache,
        wallet_address=WALLET,
        top_tokens_limit=50,
        clock=lambda: now,
    )


# ---- top tokens ----

async def test_top_tokens_empty_cache_emits_loading_then_fresh(sqlite_cache) -> None:
    service = make_service(sqlite_cache)
    out = await collect(service.get_top_tokens())

    assert out[0] is LOADING
    assert isinstance(out[1], Success)
    assert [t.symbol for t in out[1].value] == ["ALP", "BET"]
    assert len(out) == 2

    cached = await sqlite_cache.get_tokens()
    assert [t.symbol for t in cached.tokens] == ["ALP", "BET"]
    assert cached.cached_at == 1000.0


async def test_top_tokens_cache_first_then_network(sqlite_cache) -> None:
    await sqlite_cache.replace_tokens(make_tokens(["0x1", "0x2"]), cached_at=1.0)
    service = make_service(sqlite_cache)
    out = await collect(service.get_top_tokens())

    assert [type(o) for o in out] == [Success, Success]
    assert [t.address for t in out[0].value] == ["0x1", "0x2"]
    assert [t.symbol for t in out[1].value] == ["ALP", "BET"]
    assert [t.symbol for t in (await sqlite_cache.get_tokens()).tokens] == ["ALP", "BET"]


async def test_top_tokens_cached_then_network_failure(sqlite_cache) -> None:
    cached_tokens = make_tokens(["0x1", "0x2"])
    await sqlite_cache.replace_tokens(cached_tokens, cached_at=1.0)
    service = make_service(sqlite_cache, ethplorer=FakeEthplorer(error=aiohttp.ClientConnectionError("down")))

    out = await collect(service.get_top_tokens(force_refresh=False))

    assert out == [Success(cached_tokens), out[1]]
    assert isinstance(out[1], Error)
    assert out[1].message == NETWORK_ERROR_MESSAGE
    # cache untouched by the failed refresh
    assert (await sqlite_cache.get_tokens()).tokens == cached_tokens


async def test_top_tokens_forced_ignores_cache_for_first_emission(sqlite_cache) -> None:
    await sqlite_cache.replace_tokens(make_tokens(["0x1"]), cached_at=1.0)
    service = make_service(sqlite_cache)
    out = await collect(service.get_top_tokens(force_refresh=True))

    assert out[0] is LOADING
    assert [t.symbol for t in out[1].value] == ["ALP", "BET"]


async def test_top_tokens_forced_failure(sqlite_cache) -> None:
    await sqlite_cache.replace_tokens(make_tokens(["0x1"]), cached_at=1.0)
    service = make_service(sqlite_cache, ethplorer=FakeEthplorer(error=UpstreamHTTPError(401, "bad key")))
    out = await collect(service.get_top_tokens(force_refresh=True))

    assert out[0] is LOADING
    assert out[1] == Error("HTTP 401: bad key", code=401, cause=out[1].cause)
    assert len(out) == 2


async def test_each_call_is_an_independent_stream(sqlite_cache) -> None:
    ethplorer = FakeEthplorer(WIRE_TOKENS)
    service = make_service(sqlite_cache, ethplorer=ethplorer)
    first = await collect(service.get_top_tokens())
    second = await collect(service.get_top_tokens())

    assert first[0] is LOADING
    assert isinstance(second[0], Success)
    assert ethplorer.calls == 2


async def test_network_records_are_mapped_with_defaults(sqlite_cache) -> None:
    wire = [
        {"address": "0x5AAEB6053F3E94C9B9A09F33669435E7EF1BEAED"},
        {"address": "0x0000000000000000000000000000000000000001", "decimals": "n/a", "price": None},
        {"address": "0x0000000000000000000000000000000000000002", "decimals": "8",
         "price": {"rate": None, "currency": "USD"}},
        {"address": "0x0000000000000000000000000000000000000003", "price": {"rate": 0.5}},
        {"address": "not-an-address", "name": "Broken", "symbol": "BRK"},
    ]
    service = make_service(sqlite_cache, ethplorer=FakeEthplorer(wire))
    tokens = (await collect(service.get_top_tokens()))[-1].value

    first = tokens[0]
    assert first.address == "0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed"
    assert first.name == "" and first.symbol == "" and first.decimals == 0
    assert first.price is None
    assert first.image.endswith("/0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed/logo.png")

    assert tokens[1].decimals == 0 and tokens[1].price is None
    assert tokens[2].decimals == 8 and tokens[2].price is None
    assert tokens[3].price == PriceSnapshot(rate=0.5, currency="USD")
    assert tokens[4].image == "" and tokens[4].name == "Broken"


# ---- balances ----

async def test_balance_without_cache(sqlite_cache) -> None:
    etherscan = FakeEtherscan({"0xabc": "123"})
    service = make_service(sqlite_cache, etherscan=etherscan)
    out = await collect(service.get_token_balance("0xabc"))

    assert out == [LOADING, Success("123")]
    assert etherscan.calls == [("0xabc", WALLET)]
    assert await sqlite_cache.get_balance("0xabc") == CachedBalance("0xabc", "123", 1000.0)


async def test_balance_cached_then_fresh(sqlite_cache) -> None:
    await sqlite_cache.put_balance(CachedBalance("0xabc", "1", 1.0))
    service = make_service(sqlite_cache, etherscan=FakeEtherscan({"0xabc": "2"}))
    out = await collect(service.get_token_balance("0xabc"))

    assert out == [Success("1"), Success("2")]
    assert (await sqlite_cache.get_balance("0xabc")).balance == "2"


async def test_balance_error_suppressed_when_cached_and_not_forced(sqlite_cache) -> None:
    await sqlite_cache.put_balance(CachedBalance("0xabc", "1", 1.0))
    service = make_service(sqlite_cache, etherscan=FakeEtherscan(error=aiohttp.ClientConnectionError("down")))
    out = await collect(service.get_token_balance("0xabc", force_refresh=False))

    assert out == [Success("1")]


async def test_balance_error_surfaces_when_forced(sqlite_cache) -> None:
    await sqlite_cache.put_balance(CachedBalance("0xabc", "1", 1.0))
    service = make_service(sqlite_cache, etherscan=FakeEtherscan(error=aiohttp.ClientConnectionError("down")))
    out = await collect(service.get_token_balance("0xabc", force_refresh=True))

    assert out[0] is LOADING
    assert isinstance(out[1], Error)
    assert len(out) == 2
    assert (await sqlite_cache.get_balance("0xabc")).balance == "1"


async def test_balance_error_surfaces_without_cache(sqlite_cache) -> None:
    service = make_service(sqlite_cache, etherscan=FakeEtherscan(error=UpstreamHTTPError(500, "oops")))
    out = await collect(service.get_token_balance("0xabc"))

    assert out[0] is LOADING
    assert out[1].message == "HTTP 500: oops"
    assert out[1].code == 500


async def test_clear_cache_purges_both_collections(sqlite_cache) -> None:
    await sqlite_cache.replace_tokens(make_tokens(["0x1"]), cached_at=1.0)
    await sqlite_cache.put_balance(CachedBalance("0x1", "5", 1.0))
    service = make_service(sqlite_cache)

    await service.clear_cache()

    assert await sqlite_cache.get_tokens() is None
    assert await sqlite_cache.get_balance("0x1") is None
    out = await collect(service.get_top_tokens())
    assert out[0] is LOADING


@pytest.mark.parametrize("force", [False, True])
async def test_streams_are_lazy(sqlite_cache, force) -> None:
    ethplorer = FakeEthplorer(WIRE_TOKENS)
    service = make_service(sqlite_cache, ethplorer=ethplorer)
    stream = service.get_top_tokens(force_refresh=force)
    assert ethplorer.calls == 0
    await stream.__anext__()
    assert ethplorer.calls == 0
    await stream.aclose()


async def test_one_malformed_record_does_not_fail_the_list(sqlite_cache) -> None:
    wire = [
        WIRE_TOKENS[0],
        {"address": "0x0000000000000000000000000000000000000009", "name": 9, "holdersCount": "n/a",
         "price": {"rate": "n/a", "currency": "USD"}},
    ]
    service = make_service(sqlite_cache, ethplorer=FakeEthplorer(wire))
    out = await collect(service.get_top_tokens())

    assert isinstance(out[-1], Success)
    alpha, odd = out[-1].value
    assert alpha.symbol == "ALP"
    assert odd.address == "0x0000000000000000000000000000000000000009"
    assert odd.name == "" and odd.holders_count is None and odd.price is None
