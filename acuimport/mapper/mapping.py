"""Field mapping model."""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class MatchConfidence(str, Enum):
    """How sure the auto-mapper is about a column match."""

    EXACT = "exact"
    ALIAS = "alias"
    FUZZY = "fuzzy"
    NONE = "none"

    @property
    def priority(self) -> int:
        return CONFIDENCE_PRIORITY[self]


CONFIDENCE_PRIORITY = {
    MatchConfidence.EXACT: 3,
    MatchConfidence.ALIAS: 2,
    MatchConfidence.FUZZY: 1,
    MatchConfidence.NONE: 0,
}


@dataclass
class FieldMapping:
    """Maps one source column to zero or one target field."""

    source_column: str
    target_field: Optional[str] = None  # api_name, may be dotted ("MainAddress.City")
    confidence: MatchConfidence = MatchConfidence.NONE
    default_value: Optional[str] = None
    ignored: bool = False

    @property
    def is_active(self) -> bool:
        """Mapped and not ignored."""
        return bool(self.target_field) and not self.ignored

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "source_column": self.source_column,
            "target_field": self.target_field,
            "confidence": MatchConfidence(self.confidence).value,
            "default_value": self.default_value,
            "ignored": self.ignored,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldMapping":
        """Build from a dictionary (accepts camelCase keys too)."""
        return cls(
            source_column=data.get("source_column", data.get("sourceColumn", "")),
            target_field=data.get("target_field", data.get("targetField")),
            confidence=MatchConfidence(data.get("confidence") or "none"),
            default_value=data.get("default_value", data.get("defaultValue")),
            ignored=bool(data.get("ignored", False)),
        )
