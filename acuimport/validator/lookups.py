"""Fetches reference data (lookup tables) from Acumatica."""
import logging
from typing import Callable, List, Optional, Set

from acuimport.validator.models import LookupFetchResult, LookupProgress
from acuimport.schema.models import LookupRequirement

logger = logging.getLogger(__name__)


def fetch_key_values(gateway, entity: str, key_field: str) -> Set[str]:
    """All non-empty, trimmed ``key_field`` values of an entity."""
    records = gateway.get(f"/{entity}?$select={key_field}")

    values: Set[str] = set()
    if isinstance(records, list):
        for record in records:
            cell = record.get(key_field) if isinstance(record, dict) else None
            value = cell.get("value") if isinstance(cell, dict) else None
            if value is not None and str(value).strip():
                values.add(str(value).strip())
    return values


def fetch_lookup_data(
    gateway,
    requirements: List[LookupRequirement],
    on_progress: Optional[Callable[[LookupProgress], None]] = None,
) -> LookupFetchResult:
    """
    Fetch valid values for each lookup requirement, one after another.

    A failing requirement gets an empty set and a warning; validation then
    skips that field.

    Args:
        gateway: Client with a ``get(path)`` method
        requirements: Lookup tables to fetch
        on_progress: Called before each fetch and once more with "Done"

    Returns:
        LookupFetchResult
    """
    result = LookupFetchResult()
    total = len(requirements)

    for index, requirement in enumerate(requirements):
        if on_progress:
            on_progress(LookupProgress(index, total, requirement.label))

        try:
            result.lookups[requirement.name] = fetch_key_values(
                gateway, requirement.entity, requirement.key_field
            )
            logger.debug(
                f"Fetched {len(result.lookups[requirement.name])} {requirement.label}"
            )
        except Exception as e:
            result.lookups[requirement.name] = set()
            message = getattr(e, "message", None) or str(e) or "Unknown error"
            logger.warning(f"Lookup fetch failed for {requirement.label}: {message}")
            result.warnings.append(
                f"Failed to fetch {requirement.label}: {message}. "
                "Lookup validation will be skipped for this field."
            )

    if on_progress:
        on_progress(LookupProgress(total, total, "Done"))

    return result
