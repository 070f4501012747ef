"""Fast key/value cache backends and the calculation result cache."""
from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from threading import RLock
from typing import Callable, Optional, Tuple, Type, TypeVar

import redis
from pydantic import BaseModel

from .engine.util import canonical_number

logger = logging.getLogger(__name__)

DEFAULT_RESULT_TTL_SEC = 86400

ModelT = TypeVar("ModelT", bound=BaseModel)


class FastCache:
    """Abstract string key/value store with per-key expiry."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str, *, ttl_seconds: int) -> None:
        raise NotImplementedError

    def flush(self) -> None:
        raise NotImplementedError


class RedisFastCache(FastCache):
    def __init__(self, url: str, *, timeout: float = 2.0) -> None:
        self.client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )

    def get(self, key: str) -> Optional[str]:
        return self.client.get(key)

    def set(self, key: str, value: str, *, ttl_seconds: int) -> None:
        self.client.set(key, value, ex=ttl_seconds)

    def flush(self) -> None:
        self.client.flushdb()


class MemoryFastCache(FastCache):
    """Process-local LRU backend used when no Redis URL is configured."""

    def __init__(self, clock: Callable[[], float] = time.monotonic, *, max_size: int = 10000) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.clock = clock
        self.max_size = max_size
        self._entries: "OrderedDict[str, Tuple[str, float]]" = OrderedDict()
        self._lock = RLock()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self.clock() >= expires_at:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: str, *, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        with self._lock:
            now = self.clock()
            self._purge_expired(now)
            if key not in self._entries and len(self._entries) >= self.max_size:
                self._entries.popitem(last=False)
            self._entries[key] = (value, now + ttl_seconds)
            self._entries.move_to_end(key)

    def flush(self) -> None:
        with self._lock:
            self._entries.clear()

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, (_, expires_at) in self._entries.items() if now >= expires_at]
        for k in expired:
            del self._entries[k]


@dataclass(frozen=True)
class CalculationCacheKey:
    namespace: str  # "calc" for direct requests, "smart" for inferred ones
    origin: str
    destination: str
    weight_kg: float
    transport_mode: str

    def serialise(self) -> str:
        weight = canonical_number(self.weight_kg)
        return f"{self.namespace}:{self.origin}:{self.destination}:{weight}:{self.transport_mode}"


class CalculationCache:
    """Cache-aside store for computed results.

    Reads never raise: a transport fault or a payload that no longer matches
    the expected schema is reported as a miss so the caller recomputes.
    """

    def __init__(self, backend: FastCache, *, ttl_seconds: int = DEFAULT_RESULT_TTL_SEC) -> None:
        self.backend = backend
        self.ttl_seconds = ttl_seconds

    def get(self, key: CalculationCacheKey, schema: Type[ModelT]) -> Optional[ModelT]:
        cache_key = key.serialise()
        try:
            raw = self.backend.get(cache_key)
            if raw is None:
                return None
            return schema.model_validate_json(raw)
        except Exception as exc:
            logger.warning("result cache read failed for %s (%s); treating as miss", cache_key, exc)
            return None

    def set(self, key: CalculationCacheKey, result: BaseModel, ttl_seconds: Optional[int] = None) -> bool:
        cache_key = key.serialise()
        try:
            self.backend.set(cache_key, result.model_dump_json(), ttl_seconds=ttl_seconds or self.ttl_seconds)
        except Exception as exc:
            logger.warning("result cache write failed for %s (%s)", cache_key, exc)
            return False
        return True
