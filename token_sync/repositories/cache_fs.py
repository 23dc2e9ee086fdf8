import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from token_sync.models import CachedBalance, CachedTokenList, PriceSnapshot, Token
from token_sync.ports import TokenCache

log = logging.getLogger("cache")


class FileTokenCache(TokenCache):
    """
    JSON files under one directory:
        tokens.json               [{"order_index", "cached_at", "token"}, ...]
        balances/<address>.json   {"token_address", "balance", "cached_at"}
    """

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = Path(base_dir)
        self.tokens_file = self.base_dir / "tokens.json"
        self.balances = self.base_dir / "balances"
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.balances.mkdir(exist_ok=True)

    def _read_token_rows(self) -> list[dict]:
        if not self.tokens_file.exists():
            return []
        try:
            rows = json.loads(self.tokens_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            log.warning("unreadable token cache %s, ignoring", self.tokens_file)
            return []
        return sorted(rows, key=lambda r: r["order_index"])

    @staticmethod
    def _token_from_dict(d: dict) -> Token:
        price = d.get("price")
        return Token(
            address=d["address"],
            name=d.get("name", ""),
            symbol=d.get("symbol", ""),
            decimals=int(d.get("decimals", 0)),
            image=d.get("image", ""),
            price=PriceSnapshot(**price) if price else None,
            holders_count=d.get("holders_count"),
            total_supply=d.get("total_supply"),
        )

    async def get_tokens(self) -> Optional[CachedTokenList]:
        rows = self._read_token_rows()
        if not rows:
            return None
        return CachedTokenList(
            tokens=[self._token_from_dict(r["token"]) for r in rows],
            cached_at=max(float(r["cached_at"]) for r in rows),
        )

    async def replace_tokens(self, tokens: list[Token], cached_at: float) -> None:
        rows = []
        for index, t in enumerate(tokens):
            d = asdict(t)
            d["address"] = t.address.lower()
            rows.append({"order_index": index, "cached_at": cached_at, "token": d})
        tmp = self.tokens_file.with_suffix(".tmp")
        tmp.write_text(json.dumps(rows, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self.tokens_file)

    async def get_tokens_cached_at(self) -> Optional[float]:
        rows = self._read_token_rows()
        return max(float(r["cached_at"]) for r in rows) if rows else None

    async def clear_tokens(self) -> None:
        self.tokens_file.unlink(missing_ok=True)

    def _balance_path(self, token_address: str) -> Path:
        return self.balances / f"{token_address.lower()}.json"

    async def get_balance(self, token_address: str) -> Optional[CachedBalance]:
        p = self._balance_path(token_address)
        if not p.exists():
            return None
        try:
            return CachedBalance(**json.loads(p.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, TypeError):
            log.warning("unreadable balance cache %s, ignoring", p)
            return None

    async def put_balance(self, balance: CachedBalance) -> None:
        d = asdict(balance)
        d["token_address"] = balance.token_address.lower()
        self._balance_path(balance.token_address).write_text(json.dumps(d), encoding="utf-8")

    async def get_balance_cached_at(self, token_address: str) -> Optional[float]:
        cached = await self.get_balance(token_address)
        return cached.cached_at if cached else None

    async def clear_balances(self) -> None:
        for p in self.balances.glob("*.json"):
            p.unlink(missing_ok=True)
