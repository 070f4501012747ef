"""Factory helpers for caches, stores, collaborators and the engine."""
from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Optional

from .cache import DEFAULT_RESULT_TTL_SEC, CalculationCache, FastCache, MemoryFastCache, RedisFastCache
from .db import CalculationAuditRepository, EmissionFactorRepository
from .engine.audit import AuditDispatcher
from .engine.calculator import CalculationEngine
from .engine.extractor import AnthropicExtractor, TextExtractor, UnconfiguredExtractor
from .engine.factors import DEFAULT_FACTOR_TTL_SEC, EmissionFactorStore

logger = logging.getLogger(__name__)


def _redis_url() -> Optional[str]:
    return os.environ.get("REDIS_URL") or None


@lru_cache(maxsize=1)
def get_fast_cache() -> FastCache:
    url = _redis_url()
    if url:
        return RedisFastCache(url)
    logger.warning("REDIS_URL not set; using in-process cache")
    return MemoryFastCache()


@lru_cache(maxsize=4)
def get_factor_repo(dsn: str) -> EmissionFactorRepository:
    return EmissionFactorRepository(dsn)


@lru_cache(maxsize=4)
def get_audit_dispatcher(dsn: str) -> AuditDispatcher:
    return AuditDispatcher(CalculationAuditRepository(dsn))


def build_extractor() -> TextExtractor:
    api_key = os.environ.get("ANTHROPIC_API_KEY", "")
    if not api_key:
        return UnconfiguredExtractor()
    model = os.environ.get("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")
    return AnthropicExtractor(api_key, model=model)


def build_factor_store(dsn: str) -> EmissionFactorStore:
    ttl = int(os.environ.get("EMISSION_FACTOR_TTL_SEC", str(DEFAULT_FACTOR_TTL_SEC)))
    return EmissionFactorStore(get_factor_repo(dsn), get_fast_cache(), ttl_seconds=ttl)


@lru_cache(maxsize=4)
def build_engine(dsn: str) -> CalculationEngine:
    ttl = int(os.environ.get("CALCULATION_CACHE_TTL_SEC", str(DEFAULT_RESULT_TTL_SEC)))
    results = CalculationCache(get_fast_cache(), ttl_seconds=ttl)
    return CalculationEngine(
        build_factor_store(dsn),
        results,
        get_audit_dispatcher(dsn),
        build_extractor(),
    )
