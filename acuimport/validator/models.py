"""Validation result types. These are data, never raised."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set


class RowStatus(str, Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


@dataclass
class ValidationError:
    """A problem that blocks the row."""

    field: str
    message: str
    value: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "message": self.message, "value": self.value}


@dataclass
class ValidationWarning:
    """A problem the user should look at; the row can still be imported."""

    field: str
    message: str
    value: str = ""
    suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"field": self.field, "message": self.message, "value": self.value}
        if self.suggestion is not None:
            data["suggestion"] = self.suggestion
        return data


@dataclass
class LookupContext:
    """Remote reference data available to validation."""

    lookups: Dict[str, Set[str]] = field(default_factory=dict)  # field api_name -> valid values
    existing_keys: Optional[Set[str]] = None  # None when unknown


@dataclass
class RowValidationResult:
    """Validation outcome of one row (0-based ``row_index``)."""

    row_index: int
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationWarning] = field(default_factory=list)

    @property
    def status(self) -> RowStatus:
        if self.errors:
            return RowStatus.FAIL
        if self.warnings:
            return RowStatus.WARN
        return RowStatus.PASS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row_index": self.row_index,
            "status": self.status.value,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }


@dataclass
class LookupFetchResult:
    lookups: Dict[str, Set[str]] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


@dataclass
class LookupProgress:
    completed: int
    total: int
    current: str
