"""Validation of mapped rows before import."""

from .engine import ValidationEngine, validate_rows
from .lookups import fetch_lookup_data
from .models import (
    LookupContext,
    RowStatus,
    RowValidationResult,
    ValidationError,
    ValidationWarning,
)

__all__ = [
    "ValidationEngine",
    "validate_rows",
    "fetch_lookup_data",
    "LookupContext",
    "RowStatus",
    "RowValidationResult",
    "ValidationError",
    "ValidationWarning",
]
