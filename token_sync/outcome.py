"""
Tri-state result type shared by every asynchronous boundary.

An Outcome is exactly one of:
    Loading              - work in flight, more emissions may follow
    Success(value)       - payload available
    Error(message, ...)  - failure; code and cause are optional

Streams of Outcome values are plain async generators. Consumers must treat
Loading as non-terminal.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

import aiohttp
from pydantic import ValidationError

from token_sync.errors import (
    MalformedResponseError,
    OutcomeFailure,
    OutcomeLoadingError,
    UpstreamHTTPError,
    UpstreamRejectedError,
)

log = logging.getLogger("outcome")

T = TypeVar("T")
R = TypeVar("R")

NETWORK_ERROR_MESSAGE = "Network connection failed. Please check your internet connection."


class Outcome(Generic[T]):
    __slots__ = ()

    @property
    def is_loading(self) -> bool:
        return isinstance(self, Loading)

    @property
    def is_success(self) -> bool:
        return isinstance(self, Success)

    @property
    def is_error(self) -> bool:
        return isinstance(self, Error)

    def map(self, transform: Callable[[T], R]) -> "Outcome[R]":
        """Transform a Success payload. A failing transform becomes an Error, it never raises."""
        if isinstance(self, Success):
            try:
                return Success(transform(self.value))
            except Exception as e:
                return Error(message=str(e) or "Failed to transform data", cause=e)
        return self  # type: ignore[return-value]

    def on_success(self, action: Callable[[T], Any]) -> "Outcome[T]":
        if isinstance(self, Success):
            action(self.value)
        return self

    def on_error(self, action: Callable[[str, Optional[int], Optional[BaseException]], Any]) -> "Outcome[T]":
        if isinstance(self, Error):
            action(self.message, self.code, self.cause)
        return self

    def on_loading(self, action: Callable[[], Any]) -> "Outcome[T]":
        if isinstance(self, Loading):
            action()
        return self

    def get_or_none(self) -> Optional[T]:
        return self.value if isinstance(self, Success) else None

    def get_or_default(self, default: T) -> T:
        return self.value if isinstance(self, Success) else default

    def get_or_throw(self) -> T:
        if isinstance(self, Success):
            return self.value
        if isinstance(self, Error):
            raise self.cause if self.cause is not None else OutcomeFailure(self.message, self.code)
        raise OutcomeLoadingError("Data is still loading")


class Loading(Outcome[Any]):
    __slots__ = ()
    _instance: Optional["Loading"] = None

    def __new__(cls) -> "Loading":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "Loading"


LOADING = Loading()


@dataclass(frozen=True)
class Success(Outcome[T]):
    value: T


@dataclass(frozen=True)
class Error(Outcome[Any]):
    message: str
    code: Optional[int] = None
    cause: Optional[BaseException] = None


async def safe_api_call(call: Callable[[], Awaitable[T]]) -> Outcome[T]:
    """
    Single try/classify boundary for upstream calls.
    Every failure is turned into an Error; asyncio.CancelledError is left alone.
    """
    try:
        return Success(await call())
    except UpstreamHTTPError as e:
        log.error("HTTP error: %s", e.status)
        return Error(message=f"HTTP {e.status}: {e.body or e.reason}", code=e.status, cause=e)
    except UpstreamRejectedError as e:
        log.error("Upstream rejected request: %s", e)
        return Error(message=f"Upstream rejected request: {e}", cause=e)
    except (ValidationError, MalformedResponseError) as e:
        log.error("Response parsing error: %s", e)
        return Error(message=f"Failed to parse server response: {e}", cause=e)
    except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
        log.error("Network error: %r", e)
        return Error(message=NETWORK_ERROR_MESSAGE, cause=e)
    except Exception as e:
        log.exception("Unexpected error: %s", e)
        return Error(message=f"An unexpected error occurred: {e}", cause=e)
