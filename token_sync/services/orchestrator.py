# services/orchestrator.py
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from enum import Enum
from typing import Callable, Coroutine, Optional

from token_sync.models import Token, TokenViewState
from token_sync.outcome import LOADING, Error, Loading, Outcome, Success
from token_sync.ports import TokenService
from token_sync.utils.formatting import format_token_balance

log = logging.getLogger("orchestrator")

SEARCH_DEBOUNCE = 0.3


class ListStatus(str, Enum):
    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    LOADED = "loaded"
    LOADED_WITH_ERROR = "loaded_with_error"


class ErrorDisplay(str, Enum):
    NONE = "none"
    FULL_SCREEN = "full_screen"  # nothing good to show, offer a retry
    BANNER = "banner"  # dismissible, over the last good list


def filter_tokens(query: str, tokens: list[TokenViewState]) -> list[TokenViewState]:
    if not query.strip():
        return []
    return [t for t in tokens if t.matches(query)]


class TokenFetchOrchestrator:
    """
    Owns the token list, search text and per-token balance state.

    Search changes are debounced; every settled query cancels the previous
    balance batch and starts one concurrent fetch per matching token. Batch
    fetches carry the generation they were started in and drop their results
    once a newer batch exists. Single-token retries run outside the batch.

    All state writes go through synchronous methods that never await, so
    concurrent completions are applied one at a time by the event loop.
    """

    def __init__(
            self,
            service: TokenService,
            debounce: float = SEARCH_DEBOUNCE,
            clock: Callable[[], float] = time.time,
    ) -> None:
        self._service = service
        self._debounce = float(debounce)
        self._clock = clock

        self._tokens: list[TokenViewState] = []
        self._status = ListStatus.NOT_LOADED
        self._is_loading = False
        self._error: Optional[str] = None
        self._has_loaded = False

        self._search_text = ""
        self._settled_query: Optional[str] = None

        self._generation = 0
        self._load_task: Optional[asyncio.Task] = None
        self._debounce_task: Optional[asyncio.Task] = None
        self._batch_task: Optional[asyncio.Task] = None
        self._retry_tasks: set[asyncio.Task] = set()
        self._tasks: set[asyncio.Task] = set()
        self._listeners: list[Callable[["TokenFetchOrchestrator"], None]] = []

    # ---- read side ----

    @property
    def tokens(self) -> list[TokenViewState]:
        return list(self._tokens)

    @property
    def displayed_tokens(self) -> list[TokenViewState]:
        return filter_tokens(self._search_text, self._tokens)

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def error_display(self) -> ErrorDisplay:
        if self._error is None:
            return ErrorDisplay.NONE
        return ErrorDisplay.BANNER if self._has_loaded else ErrorDisplay.FULL_SCREEN

    @property
    def list_status(self) -> ListStatus:
        return self._status

    @property
    def search_text(self) -> str:
        return self._search_text

    @property
    def batch_generation(self) -> int:
        return self._generation

    def token(self, address: str) -> Optional[TokenViewState]:
        address = address.lower()
        return next((t for t in self._tokens if t.address == address), None)

    def add_listener(self, callback: Callable[["TokenFetchOrchestrator"], None]) -> None:
        self._listeners.append(callback)

    def _notify(self) -> None:
        for cb in list(self._listeners):
            try:
                cb(self)
            except Exception:
                log.exception("state listener failed")

    # ---- task bookkeeping ----

    def _spawn(self, coro: Coroutine, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("task %s failed: %r", task.get_name(), exc, exc_info=exc)

    async def wait_idle(self) -> None:
        """Wait until no load, debounce, batch or retry task is pending."""
        while True:
            pending = [t for t in self._tasks if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def close(self) -> None:
        for t in list(self._tasks):
            t.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)

    # ---- token list ----

    def load_token_list(self, force_refresh: bool = False) -> Optional[asyncio.Task]:
        if not force_refresh:
            if self._status in (ListStatus.LOADED, ListStatus.LOADED_WITH_ERROR):
                return None
            if self._load_task is not None and not self._load_task.done():
                return self._load_task
        elif self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()

        self._status = ListStatus.LOADING
        self._is_loading = True
        self._error = None
        self._notify()
        self._load_task = self._spawn(self._run_token_list_load(force_refresh), "load-token-list")
        return self._load_task

    def retry_load_tokens(self) -> Optional[asyncio.Task]:
        return self.load_token_list(force_refresh=True)

    async def _run_token_list_load(self, force_refresh: bool) -> None:
        async for outcome in self._service.get_top_tokens(force_refresh):
            if isinstance(outcome, Success):
                self._apply_token_list(outcome.value, refetch_balances=not force_refresh)
            elif isinstance(outcome, Error):
                self._apply_token_list_error(outcome)
            elif isinstance(outcome, Loading):
                self._is_loading = True
                self._notify()

    def _apply_token_list(self, tokens: list[Token], refetch_balances: bool) -> None:
        now = self._clock()
        self._tokens = [TokenViewState.from_token(t, now) for t in tokens]
        self._status = ListStatus.LOADED
        self._is_loading = False
        self._error = None
        self._has_loaded = True
        log.info("token list loaded: %d tokens", len(tokens))
        self._notify()
        # a query settled against an older (or empty) list has to be matched again
        if refetch_balances and self._settled_query and self._settled_query.strip():
            matched = filter_tokens(self._settled_query, self._tokens)
            self._start_batch([t.address for t in matched])

    def _apply_token_list_error(self, error: Error) -> None:
        self._status = ListStatus.LOADED_WITH_ERROR
        self._is_loading = False
        self._error = error.message
        log.error("Error loading tokens: %s", error.message)
        self._notify()

    def dismiss_error(self) -> None:
        self._error = None
        if self._status is ListStatus.LOADED_WITH_ERROR and self._has_loaded:
            self._status = ListStatus.LOADED
        self._notify()

    # ---- search ----

    def update_search_text(self, text: str) -> None:
        self._search_text = text
        self._notify()
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = self._spawn(self._settle_after_debounce(text), "search-debounce")

    async def _settle_after_debounce(self, text: str) -> None:
        await asyncio.sleep(self._debounce)
        self._settle_search(text)

    def _settle_search(self, query: str) -> None:
        if query == self._settled_query:
            return
        self._settled_query = query
        matched = filter_tokens(query, self._tokens)
        log.debug("settled search %r: %d matches", query, len(matched))
        self._start_batch([t.address for t in matched])

    # ---- balances ----

    def _cancel_batch(self) -> None:
        self._generation += 1
        if self._batch_task is not None and not self._batch_task.done():
            self._batch_task.cancel()
        self._batch_task = None

    def _start_batch(self, addresses: list[str]) -> None:
        self._cancel_batch()
        if not addresses:
            return
        log.debug("fetching balances for %s", addresses)
        self._batch_task = self._spawn(self._run_batch(addresses, self._generation), f"balance-batch-{self._generation}")

    async def _run_batch(self, addresses: list[str], generation: int) -> None:
        results = await asyncio.gather(
            *(self._fetch_balance(a, generation=generation) for a in addresses),
            return_exceptions=True,
        )
        for address, res in zip(addresses, results):
            if isinstance(res, Exception):
                log.error("balance fetch for %s failed: %r", address, res)

    async def _fetch_balance(self, address: str, generation: Optional[int] = None, force_refresh: bool = False) -> None:
        async for outcome in self._service.get_token_balance(address, force_refresh):
            if generation is not None and generation != self._generation:
                log.debug("dropping stale balance for %s (batch %d superseded)", address, generation)
                return
            self._apply_balance(address, outcome)

    def _apply_balance(self, address: str, outcome: Outcome[str]) -> None:
        token = self.token(address)
        if token is None:
            return
        balance = outcome.map(lambda raw: format_token_balance(raw, token.decimals))
        now = self._clock()
        self._tokens = [
            replace(t, balance=balance, last_updated=now) if t.address == token.address else t
            for t in self._tokens
        ]
        self._notify()

    def retry_token_balance(self, address: str) -> asyncio.Task:
        """Forced refetch of one balance. Runs outside the search batch, so a new search does not cancel it."""
        address = address.lower()
        self._apply_balance(address, LOADING)
        task = self._spawn(self._fetch_balance(address, force_refresh=True), f"balance-retry-{address}")
        self._retry_tasks.add(task)
        task.add_done_callback(self._retry_tasks.discard)
        return task

    # ---- cache ----

    async def clear_cache(self) -> Optional[asyncio.Task]:
        """
        Purge both caches, reset state and start the initial load again. Returns the reload task.

        In-flight loads, batch fetches and single retries are cancelled and
        awaited first, so none of them writes into the purged cache. The
        settled search is kept and re-matched once the reloaded list arrives.
        """
        stopped = [
            t for t in (self._load_task, self._batch_task, *self._retry_tasks)
            if t is not None and not t.done()
        ]
        self._cancel_batch()
        for t in stopped:
            t.cancel()
        self._load_task = None
        await asyncio.gather(*stopped, return_exceptions=True)

        await self._service.clear_cache()

        self._tokens = []
        self._status = ListStatus.NOT_LOADED
        self._is_loading = False
        self._error = None
        self._has_loaded = False
        self._notify()

        return self.load_token_list()
