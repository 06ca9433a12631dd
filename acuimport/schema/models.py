"""Entity schema models."""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


class FieldType(str, Enum):
    """Value types an entity field accepts."""

    STRING = "string"
    DECIMAL = "decimal"
    INTEGER = "integer"
    BOOLEAN = "boolean"


class EntityType(str, Enum):
    """Importable Acumatica record kinds."""

    STOCK_ITEM = "StockItem"
    CUSTOMER = "Customer"
    VENDOR = "Vendor"


class ImportMode(str, Enum):
    """How an import treats records that already exist."""

    CREATE = "create"
    CREATE_OR_UPDATE = "create_or_update"
    UPDATE = "update"


IMPORT_MODE_LABELS = {
    ImportMode.CREATE: (
        "Create Only",
        "Import new records. Fails if a record with the same key already exists.",
    ),
    ImportMode.CREATE_OR_UPDATE: (
        "Create or Update",
        "Creates new records and updates existing ones based on the key field.",
    ),
    ImportMode.UPDATE: (
        "Update Only",
        "Only updates records that already exist. Fails if the key is not found.",
    ),
}

ENTITY_SLUGS = {
    "stock-items": EntityType.STOCK_ITEM,
    "customers": EntityType.CUSTOMER,
    "vendors": EntityType.VENDOR,
}


@dataclass(frozen=True)
class EntityField:
    """A single target field of an Acumatica entity."""

    name: str
    api_name: str
    type: FieldType = FieldType.STRING
    required: bool = False
    description: str = ""
    max_length: Optional[int] = None
    is_custom: bool = False

    def to_dict(self) -> Dict:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "api_name": self.api_name,
            "type": self.type.value,
            "required": self.required,
            "description": self.description,
            "max_length": self.max_length,
            "is_custom": self.is_custom,
        }


@dataclass(frozen=True)
class LookupRequirement:
    """A remote reference table whose keys constrain a field."""

    name: str  # api_name of the constrained field
    entity: str
    key_field: str
    label: str


def entity_type_from_slug(slug: str) -> Optional[EntityType]:
    """Resolve a URL-style slug (``stock-items``) to an entity type."""
    return ENTITY_SLUGS.get(slug)


def entity_type_to_slug(entity_type: EntityType) -> str:
    """Inverse of ``entity_type_from_slug``."""
    for slug, value in ENTITY_SLUGS.items():
        if value == entity_type:
            return slug
    raise ValueError(f"Unknown entity type: {entity_type}")
