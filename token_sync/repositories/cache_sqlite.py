from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from token_sync.models import CachedBalance, CachedTokenList, PriceSnapshot, Token
from token_sync.ports import TokenCache

log = logging.getLogger("cache")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS tokens (
  address TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  symbol TEXT NOT NULL,
  decimals INTEGER NOT NULL,
  image TEXT NOT NULL,
  price_rate REAL,
  price_currency TEXT,
  price_diff REAL,
  price_market_cap_usd REAL,
  price_volume_24h REAL,
  holders_count INTEGER,
  total_supply TEXT,
  order_index INTEGER NOT NULL DEFAULT 0,
  cached_at REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS token_balances (
  token_address TEXT PRIMARY KEY,
  balance TEXT NOT NULL,
  cached_at REAL NOT NULL
);
"""


class SQLiteTokenCache(TokenCache):
    def __init__(self, db_path: str = ":memory:") -> None:
        self.db_path = db_path
        self.conn = sqlite3.connect(db_path)
        self.conn.row_factory = sqlite3.Row
        self.conn.executescript(SCHEMA_SQL)
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    @staticmethod
    def _token_from_row(row: sqlite3.Row) -> Token:
        price = None
        if row["price_rate"] is not None and row["price_currency"] is not None:
            price = PriceSnapshot(
                rate=float(row["price_rate"]),
                currency=str(row["price_currency"]),
                diff=row["price_diff"],
                market_cap_usd=row["price_market_cap_usd"],
                volume_24h=row["price_volume_24h"],
            )
        return Token(
            address=str(row["address"]),
            name=str(row["name"]),
            symbol=str(row["symbol"]),
            decimals=int(row["decimals"]),
            image=str(row["image"]),
            price=price,
            holders_count=row["holders_count"],
            total_supply=row["total_supply"],
        )

    async def get_tokens(self) -> Optional[CachedTokenList]:
        rows = self.conn.execute("SELECT * FROM tokens ORDER BY order_index ASC").fetchall()
        if not rows:
            return None
        cached_at = max(float(row["cached_at"]) for row in rows)
        return CachedTokenList(tokens=[self._token_from_row(row) for row in rows], cached_at=cached_at)

    async def replace_tokens(self, tokens: list[Token], cached_at: float) -> None:
        with self.conn:
            self.conn.execute("DELETE FROM tokens")
            self.conn.executemany(
                """
                INSERT OR REPLACE INTO tokens(
                  address, name, symbol, decimals, image,
                  price_rate, price_currency, price_diff, price_market_cap_usd, price_volume_24h,
                  holders_count, total_supply, order_index, cached_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        t.address.lower(),
                        t.name,
                        t.symbol,
                        t.decimals,
                        t.image,
                        t.price.rate if t.price else None,
                        t.price.currency if t.price else None,
                        t.price.diff if t.price else None,
                        t.price.market_cap_usd if t.price else None,
                        t.price.volume_24h if t.price else None,
                        t.holders_count,
                        t.total_supply,
                        index,
                        cached_at,
                    )
                    for index, t in enumerate(tokens)
                ],
            )
        log.debug("cached %d tokens", len(tokens))

    async def get_tokens_cached_at(self) -> Optional[float]:
        row = self.conn.execute("SELECT cached_at FROM tokens ORDER BY cached_at DESC LIMIT 1").fetchone()
        return float(row["cached_at"]) if row else None

    async def clear_tokens(self) -> None:
        with self.conn:
            self.conn.execute("DELETE FROM tokens")

    async def get_balance(self, token_address: str) -> Optional[CachedBalance]:
        row = self.conn.execute(
            "SELECT * FROM token_balances WHERE token_address = ?",
            (token_address.lower(),),
        ).fetchone()
        if not row:
            return None
        return CachedBalance(
            token_address=str(row["token_address"]),
            balance=str(row["balance"]),
            cached_at=float(row["cached_at"]),
        )

    async def put_balance(self, balance: CachedBalance) -> None:
        with self.conn:
            self.conn.execute(
                "INSERT OR REPLACE INTO token_balances(token_address, balance, cached_at) VALUES (?, ?, ?)",
                (balance.token_address.lower(), balance.balance, balance.cached_at),
            )

    async def get_balance_cached_at(self, token_address: str) -> Optional[float]:
        row = self.conn.execute(
            "SELECT cached_at FROM token_balances WHERE token_address = ?",
            (token_address.lower(),),
        ).fetchone()
        return float(row["cached_at"]) if row else None

    async def clear_balances(self) -> None:
        with self.conn:
            self.conn.execute("DELETE FROM token_balances")
