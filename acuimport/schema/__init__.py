"""Entity schemas: fields, aliases and lookup requirements."""

from .models import (
    EntityField,
    EntityType,
    FieldType,
    ImportMode,
    LookupRequirement,
    entity_type_from_slug,
    entity_type_to_slug,
)

__all__ = [
    "EntityField",
    "EntityType",
    "FieldType",
    "ImportMode",
    "LookupRequirement",
    "entity_type_from_slug",
    "entity_type_to_slug",
]
