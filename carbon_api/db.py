"""Database helpers for the carbon calculator API."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

import psycopg

from .engine.errors import FactorStoreUnavailable

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS emission_factors (
    transport_mode TEXT PRIMARY KEY,
    factor_per_km_kg DOUBLE PRECISION NOT NULL CHECK (factor_per_km_kg > 0),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
CREATE TABLE IF NOT EXISTS calculations (
    id BIGSERIAL PRIMARY KEY,
    origin TEXT NOT NULL,
    destination TEXT NOT NULL,
    weight_kg DOUBLE PRECISION NOT NULL,
    transport_mode TEXT NOT NULL,
    distance_km INTEGER NOT NULL,
    emissions_kg DOUBLE PRECISION NOT NULL,
    latency_ms INTEGER,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""


@contextmanager
def get_conn(dsn: str) -> Iterator[psycopg.Connection]:
    conn = psycopg.connect(dsn)
    try:
        yield conn
    finally:
        conn.close()


class EmissionFactorRepository:
    """Durable reference table of per-mode emission factors."""

    def __init__(self, dsn: str) -> None:
        self.dsn = dsn

    def get_factor(self, transport_mode: str) -> Optional[float]:
        sql = """
        SELECT factor_per_km_kg
        FROM emission_factors
        WHERE transport_mode = %s
        """
        try:
            with get_conn(self.dsn) as conn, conn.cursor() as cur:
                cur.execute(sql, (transport_mode,))
                row = cur.fetchone()
        except psycopg.Error as exc:
            raise FactorStoreUnavailable(f"emission factor lookup failed: {exc}") from exc
        if not row:
            return None
        return float(row[0])

    def list_factors(self) -> List[Dict[str, object]]:
        sql = "SELECT transport_mode, factor_per_km_kg FROM emission_factors ORDER BY transport_mode"
        try:
            with get_conn(self.dsn) as conn, conn.cursor() as cur:
                cur.execute(sql)
                cols = [c.name for c in cur.description]
                return [dict(zip(cols, row)) for row in cur.fetchall()]
        except psycopg.Error as exc:
            raise FactorStoreUnavailable(f"emission factor listing failed: {exc}") from exc


class CalculationAuditRepository:
    """Append-only history of computed results."""

    def __init__(self, dsn: str) -> None:
        self.dsn = dsn

    def record(self, entry: Dict[str, object]) -> None:
        sql = """
        INSERT INTO calculations (origin, destination, weight_kg, transport_mode, distance_km, emissions_kg, latency_ms)
        VALUES (%s, %s, %s, %s, %s, %s, %s)
        """
        with get_conn(self.dsn) as conn, conn.cursor() as cur:
            cur.execute(
                sql,
                (
                    entry["origin"],
                    entry["destination"],
                    float(entry["weight_kg"]),
                    entry["transport_mode"],
                    int(entry["distance_km"]),
                    float(entry["emissions_kg"]),
                    int(entry["latency_ms"]) if entry.get("latency_ms") is not None else None,
                ),
            )
            conn.commit()
