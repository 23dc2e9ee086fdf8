import logging
from typing import Any, Mapping, Type, TypeVar

import aiohttp
from pydantic import BaseModel

from token_sync.errors import UpstreamHTTPError

T = TypeVar("T", bound=BaseModel)


async def get_model(
        url: str,
        params: Mapping[str, Any],
        model: Type[T],
        timeout: float,
        log: logging.Logger,
) -> T:
    """GET `url` and decode the body into `model`. Non-2xx answers raise UpstreamHTTPError."""
    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout)) as s:
        async with s.get(url, params=params) as r:
            body = await r.text()
            log.debug("GET %s -> %s (%d bytes)", r.url.path, r.status, len(body))
            if not 200 <= r.status < 300:
                log.warning("GET %s http=%s", r.url.path, r.status)
                raise UpstreamHTTPError(r.status, body, r.reason or "")
    return model.model_validate_json(body)
