"""Column-to-field mapping."""

from .heuristic import (
    HeuristicMapper,
    assign_target,
    auto_map,
    get_sample_values,
    mapping_stats,
    missing_required_fields,
    normalize,
    toggle_ignored,
    update_mapping,
)
from .mapping import FieldMapping, MatchConfidence

__all__ = [
    "FieldMapping",
    "MatchConfidence",
    "HeuristicMapper",
    "auto_map",
    "update_mapping",
    "assign_target",
    "toggle_ignored",
    "get_sample_values",
    "mapping_stats",
    "missing_required_fields",
    "normalize",
]
