"""Emission-factor resolution with a time-bounded cache in front of the durable table."""
from __future__ import annotations

import logging
from typing import Optional, Protocol

from ..cache import FastCache

logger = logging.getLogger(__name__)

DEFAULT_FACTOR_TTL_SEC = 3600


class FactorSource(Protocol):
    def get_factor(self, transport_mode: str) -> Optional[float]:
        ...


class EmissionFactorStore:
    """Cache-aside lookup of ``factor_per_km_kg`` by transport mode.

    Concurrent misses for the same mode may each hit the durable table; there
    is no single-flight coalescing. Durable faults propagate as
    ``FactorStoreUnavailable``; fast-cache faults degrade to a durable read.
    """

    key_prefix = "emission_factor:"

    def __init__(self, repo: FactorSource, cache: FastCache, *, ttl_seconds: int = DEFAULT_FACTOR_TTL_SEC) -> None:
        self.repo = repo
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    def cache_key(self, transport_mode: str) -> str:
        return f"{self.key_prefix}{transport_mode}"

    def factor(self, transport_mode: str) -> Optional[float]:
        key = self.cache_key(transport_mode)
        cached = self._read_cached(key)
        if cached is not None:
            return cached

        value = self.repo.get_factor(transport_mode)
        if value is None:
            return None

        try:
            self.cache.set(key, repr(float(value)), ttl_seconds=self.ttl_seconds)
        except Exception as exc:
            logger.warning("emission factor cache write failed for %s (%s)", key, exc)
        return float(value)

    def _read_cached(self, key: str) -> Optional[float]:
        try:
            raw = self.cache.get(key)
            if raw is None:
                return None
            value = float(raw)
        except Exception as exc:
            logger.warning("emission factor cache read failed for %s (%s); reading table", key, exc)
            return None
        if not value > 0:
            logger.warning("ignoring non-positive cached factor %s for %s", value, key)
            return None
        return value
