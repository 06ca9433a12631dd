"""
Record Builder - turns a flat spreadsheet row into an Acumatica record

Every mapped value is wrapped as ``{"value": v}``; dotted target paths
("MainAddress.City") become nested objects.
"""

import logging
import math
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from acuimport.mapper.mapping import FieldMapping
from acuimport.schema.models import EntityField, FieldType

logger = logging.getLogger(__name__)

Scalar = Union[str, float, int, bool]

TRUE_TOKENS = {"true", "yes", "1", "y"}
FALSE_TOKENS = {"false", "no", "0", "n"}

_NUMBER_NOISE_RE = re.compile(r"[,$]")


def parse_number(value: str) -> Optional[float]:
    """Parse a decimal after dropping thousands separators and ``$``; None if not a finite number."""
    try:
        number = float(_NUMBER_NOISE_RE.sub("", value.strip()))
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_boolean(value: str) -> Optional[bool]:
    lower = value.strip().lower()
    if lower in TRUE_TOKENS:
        return True
    if lower in FALSE_TOKENS:
        return False
    return None


def coerce_value(raw: str, field: Optional[EntityField]) -> Optional[Scalar]:
    """
    Coerce a cell to the field's type

    Values that do not parse are passed through as the trimmed string, the
    validation engine is what reports them.

    Args:
        raw: Cell text
        field: Target field definition, or None for unknown/nested targets

    Returns:
        Coerced value, or None for an empty cell
    """
    trimmed = (raw or "").strip()
    if not trimmed:
        return None

    if field is None:
        return trimmed

    if field.type == FieldType.DECIMAL:
        number = parse_number(trimmed)
        return trimmed if number is None else number

    if field.type == FieldType.INTEGER:
        number = parse_number(trimmed)
        if number is None or not number.is_integer():
            return trimmed
        return int(number)

    if field.type == FieldType.BOOLEAN:
        flag = parse_boolean(trimmed)
        return trimmed if flag is None else flag

    return trimmed


def set_nested_value(record: Dict[str, Any], path: str, value: Any):
    """Set ``{"value": value}`` at a dotted path, creating parents as needed."""
    parts = path.split(".")
    current = record
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[parts[-1]] = {"value": value}


def build_acumatica_record(
    row: Mapping[str, str],
    mappings: List[FieldMapping],
    fields: Iterable[EntityField],
) -> Dict[str, Any]:
    """
    Build the API record for one row

    Args:
        row: {source_column: cell text}
        mappings: Column mappings; ignored or unmapped columns are skipped
        fields: Entity fields, used to pick the coercion by the path's first segment

    Returns:
        Record ready to PUT to the entity endpoint
    """
    record: Dict[str, Any] = {}
    field_map = {f.api_name: f for f in fields}

    for mapping in mappings:
        if not mapping.is_active:
            continue

        value = (row.get(mapping.source_column) or "").strip()
        if not value:
            value = (mapping.default_value or "").strip()
        if not value:
            continue

        field = field_map.get(mapping.target_field.split(".")[0])
        set_nested_value(record, mapping.target_field, coerce_value(value, field))

    return record


def get_record_value(record: Mapping[str, Any], path: str) -> Any:
    """Read the ``value`` stored at a dotted path, or None."""
    current: Any = record
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current.get("value") if isinstance(current, Mapping) else None
