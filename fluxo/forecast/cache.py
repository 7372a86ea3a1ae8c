"""Simple in-memory memoization for projection results.

Every forecast stage is a pure function of its inputs, so a result can be
reused whenever the inputs hash to the same key. Any changed input gives a
different key and a full recompute; there is no partial invalidation.
"""
import hashlib
import json
from collections import OrderedDict
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Optional, TypeVar

from pydantic import BaseModel

from fluxo.config import settings

T = TypeVar("T")


@dataclass
class CacheEntry:
    """A cached result with expiration."""
    data: Any
    expires_at: datetime


def _to_jsonable(value: Any) -> Any:
    """Reduce inputs to plain JSON types so equal inputs serialize equally."""
    if isinstance(value, BaseModel):
        return _to_jsonable(value.model_dump())
    if isinstance(value, Mapping):
        return {str(k): _to_jsonable(v) for k, v in sorted(value.items(), key=lambda kv: str(kv[0]))}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted(_to_jsonable(v) for v in value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def make_cache_key(**parts: Any) -> str:
    """
    Stable hash of the projection inputs.

    Typical parts: selected account ids, horizon bounds, input rows (or
    their identities/versions), options and scenario adjustments.
    """
    payload = json.dumps(_to_jsonable(parts), sort_keys=True, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class ProjectionCache:
    """
    In-memory TTL cache of projection results.

    Each caller owns its instance; two horizons computed side by side use
    different keys and never interfere.
    """

    def __init__(self, ttl_seconds: Optional[int] = None, max_entries: Optional[int] = None):
        self._cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._ttl = timedelta(seconds=ttl_seconds if ttl_seconds is not None else settings.PROJECTION_CACHE_TTL_SECONDS)
        self._max_entries = max_entries if max_entries is not None else settings.PROJECTION_CACHE_MAX_ENTRIES
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._cache)

    def get(self, key: str) -> Optional[Any]:
        """Get a cached result if not expired."""
        entry = self._cache.get(key)

        if entry is None:
            return None

        if datetime.now(timezone.utc) > entry.expires_at:
            del self._cache[key]
            return None

        self._cache.move_to_end(key)
        return entry.data

    def set(self, key: str, data: Any) -> None:
        """Cache a result, evicting the least recently used entry when full."""
        self._cache[key] = CacheEntry(data=data, expires_at=datetime.now(timezone.utc) + self._ttl)
        self._cache.move_to_end(key)
        while len(self._cache) > self._max_entries:
            self._cache.popitem(last=False)

    def get_or_compute(self, key: str, compute: Callable[[], T]) -> T:
        """Return the cached result for key, computing and storing it on a miss."""
        cached = self.get(key)
        if cached is not None:
            self.hits += 1
            return cached

        self.misses += 1
        result = compute()
        self.set(key, result)
        return result

    def invalidate(self, key: str) -> None:
        if key in self._cache:
            del self._cache[key]

    def clear(self) -> None:
        """Clear entire cache."""
        self._cache.clear()
