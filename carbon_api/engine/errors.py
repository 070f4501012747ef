"""Error taxonomy for the calculation engine."""
from __future__ import annotations

from typing import Dict, List, Optional


class CalculationError(Exception):
    """Base class for request-level failures the caller can act on."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InputValidationError(CalculationError):
    def __init__(self, field_errors: Dict[str, List[str]], message: str = "Validation failed") -> None:
        super().__init__(message)
        self.field_errors = field_errors


class UnknownEntityError(CalculationError):
    """Unknown city or unsupported transport mode."""


class UnknownCityError(UnknownEntityError):
    def __init__(self, message: str, *, side: str, city: str, parsed: Optional[dict] = None) -> None:
        super().__init__(message)
        self.side = side
        self.city = city
        self.parsed = parsed


class UnknownTransportModeError(UnknownEntityError):
    def __init__(self, mode: str) -> None:
        super().__init__(f"Unknown transport mode: {mode}")
        self.mode = mode


class ExtractionIncompleteError(CalculationError):
    def __init__(self, parsed: dict) -> None:
        super().__init__("Could not extract origin and destination from query")
        self.parsed = parsed


class TransientStoreError(RuntimeError):
    """A shared store (cache or durable table) failed."""


class FactorStoreUnavailable(TransientStoreError):
    """The durable emission-factor table could not be read."""


class ExtractorUnavailable(RuntimeError):
    """The text-extraction collaborator could not be reached."""
