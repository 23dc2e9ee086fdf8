from __future__ import annotations

import pytest

from token_sync.repositories.cache_sqlite import SQLiteTokenCache


@pytest.fixture
def sqlite_cache():
    cache = SQLiteTokenCache(":memory:")
    yield cache
    cache.close()
