"""Heuristic mapping engine for auto-detecting column mappings."""
import logging
import re
from dataclasses import replace
from difflib import SequenceMatcher
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from acuimport.mapper.mapping import FieldMapping, MatchConfidence
from acuimport.schema.models import EntityField

logger = logging.getLogger(__name__)

_NORMALIZE_RE = re.compile(r"[\s_\-]")
_TOKEN_RE = re.compile(r"[a-z0-9]+")


def normalize(value: str) -> str:
    """Lowercase and strip whitespace, underscores and hyphens."""
    return _NORMALIZE_RE.sub("", (value or "").lower())


class HeuristicMapper:
    """Auto-map source column headers to entity fields.

    Three passes, each only looking at columns that are still unmapped:

    1. exact: normalized header equals a field's normalized api name or name
    2. alias: normalized header found in the entity's alias table
    3. fuzzy: approximate match on name, api name and description

    A target field belongs to one column at a time. A later claim only takes a
    field away from its current owner when its confidence is strictly higher.
    """

    FUZZY_THRESHOLD = 0.4  # max distance (0 = identical, 1 = nothing in common)
    MIN_FUZZY_LENGTH = 3
    FUZZY_KEYS = (("name", 1.0), ("api_name", 1.0), ("description", 0.8))
    PREFIX_WEIGHT = 0.9

    def __init__(self, fields: Iterable[EntityField], aliases: Mapping[str, str]):
        """Initialize mapper with the target entity's schema."""
        self.fields = list(fields)
        self.aliases = dict(aliases)

        self._fields_by_normalized: Dict[str, str] = {}
        for field in self.fields:
            self._fields_by_normalized[normalize(field.api_name)] = field.api_name
            self._fields_by_normalized[normalize(field.name)] = field.api_name

        self._aliases_by_normalized = {
            normalize(alias): target for alias, target in self.aliases.items()
        }

    def suggest_mappings(self, source_headers: List[str]) -> List[FieldMapping]:
        """Generate one mapping per source header."""
        mappings = [FieldMapping(source_column=header) for header in source_headers]
        claimed: Dict[str, Tuple[int, MatchConfidence]] = {}

        # Pass 1: exact
        for index, header in enumerate(source_headers):
            target = self._fields_by_normalized.get(normalize(header))
            if target:
                self._try_claim(mappings, claimed, index, target, MatchConfidence.EXACT)

        # Pass 2: alias
        for index, header in enumerate(source_headers):
            if mappings[index].target_field:
                continue
            target = self._aliases_by_normalized.get(normalize(header))
            if target:
                self._try_claim(mappings, claimed, index, target, MatchConfidence.ALIAS)

        # Pass 3: fuzzy, against fields nobody claimed in passes 1-2
        unmatched = [
            index
            for index, header in enumerate(source_headers)
            if not mappings[index].target_field
            and len(header.strip()) >= self.MIN_FUZZY_LENGTH
        ]
        candidates = [f for f in self.fields if f.api_name not in claimed]

        if unmatched and candidates:
            for index in unmatched:
                match = self.find_fuzzy_match(source_headers[index], candidates)
                if match:
                    target, distance = match
                    logger.debug(
                        f"Fuzzy match {source_headers[index]!r} -> {target} (distance {distance:.2f})"
                    )
                    self._try_claim(mappings, claimed, index, target, MatchConfidence.FUZZY)

        return mappings

    @staticmethod
    def _try_claim(
        mappings: List[FieldMapping],
        claimed: Dict[str, Tuple[int, MatchConfidence]],
        index: int,
        target: str,
        confidence: MatchConfidence,
    ) -> bool:
        existing = claimed.get(target)

        if existing is not None:
            owner, owner_confidence = existing
            if confidence.priority <= owner_confidence.priority:
                return False
            mappings[owner].target_field = None
            mappings[owner].confidence = MatchConfidence.NONE

        claimed[target] = (index, confidence)
        mappings[index].target_field = target
        mappings[index].confidence = confidence
        return True

    def find_fuzzy_match(
        self, header: str, candidates: Optional[List[EntityField]] = None
    ) -> Optional[Tuple[str, float]]:
        """Return ``(api_name, distance)`` of the closest field, or None."""
        query = normalize(header)
        if not query:
            return None

        best: Optional[Tuple[str, float]] = None
        for field in self.fields if candidates is None else candidates:
            distance = self._field_distance(query, field)
            if distance <= self.FUZZY_THRESHOLD and (best is None or distance < best[1]):
                best = (field.api_name, distance)

        return best

    def _field_distance(self, query: str, field: EntityField) -> float:
        best_score = 0.0
        for key, weight in self.FUZZY_KEYS:
            text = getattr(field, key) or ""
            if text:
                best_score = max(best_score, self._similarity(query, text) * weight)
        return 1.0 - best_score

    def _similarity(self, query: str, text: str) -> float:
        """Best ratio of the query against the whole text, its words and its prefix."""
        whole = normalize(text)
        score = SequenceMatcher(None, query, whole).ratio()

        if len(query) < len(whole):
            prefix = SequenceMatcher(None, query, whole[: len(query)]).ratio()
            score = max(score, prefix * self.PREFIX_WEIGHT)

        tokens = _TOKEN_RE.findall(text.lower())
        if len(tokens) > 1:
            for token in tokens:
                if len(token) >= self.MIN_FUZZY_LENGTH:
                    score = max(score, SequenceMatcher(None, query, token).ratio())

        return score


def auto_map(
    source_headers: List[str],
    fields: Iterable[EntityField],
    aliases: Mapping[str, str],
) -> List[FieldMapping]:
    """Run the three-pass auto-mapper over a header row."""
    return HeuristicMapper(fields, aliases).suggest_mappings(source_headers)


def update_mapping(mappings: List[FieldMapping], index: int, **changes) -> List[FieldMapping]:
    """Apply a manual change to one mapping and return the updated list.

    Assigning a target field takes it away from any other column holding it.
    The input list is not modified.
    """
    previous = mappings[index]
    updated = [replace(m) for m in mappings]
    updated[index] = replace(previous, **changes)

    target = changes.get("target_field")
    if target and target != previous.target_field:
        for i, mapping in enumerate(updated):
            if i != index and mapping.target_field == target:
                updated[i] = replace(mapping, target_field=None, confidence=MatchConfidence.NONE)

    return updated


def assign_target(mappings: List[FieldMapping], index: int, api_name: Optional[str]) -> List[FieldMapping]:
    """Select a target for a column the way a user does; picking the current target clears it."""
    if not api_name or api_name == mappings[index].target_field:
        return update_mapping(mappings, index, target_field=None, confidence=MatchConfidence.NONE)
    return update_mapping(
        mappings, index, target_field=api_name, confidence=MatchConfidence.EXACT, ignored=False
    )


def toggle_ignored(mappings: List[FieldMapping], index: int) -> List[FieldMapping]:
    if mappings[index].ignored:
        return update_mapping(mappings, index, ignored=False)
    return update_mapping(
        mappings,
        index,
        ignored=True,
        target_field=None,
        confidence=MatchConfidence.NONE,
        default_value=None,
    )


def get_sample_values(rows: List[Mapping[str, str]], column: str, max_values: int = 3) -> List[str]:
    """Up to ``max_values`` distinct non-empty values of a column."""
    samples: List[str] = []
    for row in rows:
        value = (row.get(column) or "").strip()
        if value and value not in samples:
            samples.append(value)
            if len(samples) >= max_values:
                break
    return samples


def mapping_stats(mappings: List[FieldMapping]) -> Dict[str, int]:
    """Count mappings by confidence."""
    active = [m for m in mappings if not m.ignored]

    def count(confidence: MatchConfidence) -> int:
        return sum(1 for m in active if m.confidence == confidence)

    stats = {
        "total": len(mappings),
        "exact": count(MatchConfidence.EXACT),
        "alias": count(MatchConfidence.ALIAS),
        "fuzzy": count(MatchConfidence.FUZZY),
        "unmapped": count(MatchConfidence.NONE),
        "ignored": len(mappings) - len(active),
    }
    stats["mapped"] = stats["exact"] + stats["alias"] + stats["fuzzy"]
    return stats


def missing_required_fields(
    mappings: List[FieldMapping],
    fields: Iterable[EntityField],
    default_values: Optional[Mapping[str, str]] = None,
) -> List[EntityField]:
    """Required fields with neither a mapped column nor a default value."""
    default_values = default_values or {}
    mapped = {m.target_field for m in mappings if m.is_active}
    return [
        field
        for field in fields
        if field.required
        and field.api_name not in mapped
        and not (default_values.get(field.api_name) or "").strip()
    ]
