"""Entity adapters: everything the pipeline needs to know about one entity type."""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple, Union

from acuimport.api.errors import AcumaticaError
from acuimport.builder.record_builder import build_acumatica_record, get_record_value
from acuimport.importer.errors import UnknownEntityTypeError
from acuimport.mapper.mapping import FieldMapping
from acuimport.schema.customer import CUSTOMER_ALIASES, CUSTOMER_FIELDS, CUSTOMER_LOOKUPS
from acuimport.schema.models import EntityField, EntityType, ImportMode, LookupRequirement
from acuimport.schema.stock_item import STOCK_ITEM_ALIASES, STOCK_ITEM_FIELDS, STOCK_ITEM_LOOKUPS
from acuimport.schema.vendor import VENDOR_ALIASES, VENDOR_FIELDS, VENDOR_LOOKUPS
from acuimport.validator.lookups import fetch_key_values
from acuimport.validator.models import LookupContext, RowValidationResult, ValidationError, ValidationWarning

logger = logging.getLogger(__name__)


@dataclass
class ImportRowResult:
    """Outcome of pushing one record."""

    success: bool
    error: Optional[str] = None
    error_code: Optional[str] = None
    response: Any = None


@dataclass(frozen=True)
class EntityAdapter:
    """Schema and behaviour of one importable entity type."""

    entity_type: EntityType
    label: str
    key_field: str
    fields: Tuple[EntityField, ...]
    aliases: Mapping[str, str]
    lookup_requirements: Tuple[LookupRequirement, ...]

    @property
    def api_entity(self) -> str:
        """Entity name in the endpoint path."""
        return self.entity_type.value

    def required_fields(self) -> List[EntityField]:
        return [f for f in self.fields if f.required]

    def field(self, api_name: str) -> Optional[EntityField]:
        return next((f for f in self.fields if f.api_name == api_name), None)

    def fetch_existing_keys(self, gateway) -> Set[str]:
        """Key values of every record of this entity already in Acumatica."""
        keys = fetch_key_values(gateway, self.api_entity, self.key_field)
        logger.debug(f"Found {len(keys)} existing {self.label}")
        return keys

    def map_record(self, row: Mapping[str, str], mappings: List[FieldMapping]) -> Dict[str, Any]:
        return build_acumatica_record(row, mappings, self.fields)

    def validate_record(
        self,
        record: Mapping[str, Any],
        lookups: Optional[LookupContext] = None,
        mode: ImportMode = ImportMode.CREATE_OR_UPDATE,
    ) -> RowValidationResult:
        """Check an already built record: required fields, key against mode, lookups."""
        lookups = lookups or LookupContext()
        result = RowValidationResult(row_index=0)

        for field in self.required_fields():
            value = get_record_value(record, field.api_name)
            if value is None or (isinstance(value, str) and not value.strip()):
                result.errors.append(
                    ValidationError(field.api_name, f'Required field "{field.name}" is empty')
                )

        key = get_record_value(record, self.key_field)
        key = str(key) if key is not None else ""
        existing = lookups.existing_keys
        if key and existing is not None:
            if ImportMode(mode) == ImportMode.CREATE and key in existing:
                result.errors.append(
                    ValidationError(
                        self.key_field, f'Key "{key}" already exists in Acumatica (Create Only mode)', key
                    )
                )
            elif ImportMode(mode) == ImportMode.UPDATE and key not in existing:
                result.errors.append(
                    ValidationError(
                        self.key_field, f'Key "{key}" not found in Acumatica (Update Only mode)', key
                    )
                )

        for name, valid in lookups.lookups.items():
            value = get_record_value(record, name)
            if value is None or not valid:
                continue
            value = str(value)
            if value in valid:
                continue
            close = next((v for v in sorted(valid) if v.upper() == value.upper()), None)
            if close:
                result.warnings.append(
                    ValidationWarning(
                        name, f'"{value}" is close to "{close}", check casing', value, suggestion=close
                    )
                )
            else:
                result.errors.append(
                    ValidationError(name, f'"{value}" is not a valid value for {name}', value)
                )

        return result

    def push_record(self, gateway, record: Mapping[str, Any]) -> ImportRowResult:
        """PUT the record; Acumatica creates or updates it by key.

        Gateway errors come back as a failed result with the raw message.
        """
        try:
            response = gateway.put(f"/{self.api_entity}", record)
        except AcumaticaError as e:
            logger.debug(f"Push of {self.api_entity} failed ({e.status}): {e.message}")
            return ImportRowResult(success=False, error=e.message, error_code=str(e.status))
        return ImportRowResult(success=True, response=response)


ENTITY_ADAPTERS: Dict[str, EntityAdapter] = {
    EntityType.STOCK_ITEM.value: EntityAdapter(
        entity_type=EntityType.STOCK_ITEM,
        label="Stock Items",
        key_field="InventoryID",
        fields=tuple(STOCK_ITEM_FIELDS),
        aliases=STOCK_ITEM_ALIASES,
        lookup_requirements=tuple(STOCK_ITEM_LOOKUPS),
    ),
    EntityType.CUSTOMER.value: EntityAdapter(
        entity_type=EntityType.CUSTOMER,
        label="Customers",
        key_field="CustomerID",
        fields=tuple(CUSTOMER_FIELDS),
        aliases=CUSTOMER_ALIASES,
        lookup_requirements=tuple(CUSTOMER_LOOKUPS),
    ),
    EntityType.VENDOR.value: EntityAdapter(
        entity_type=EntityType.VENDOR,
        label="Vendors",
        key_field="VendorID",
        fields=tuple(VENDOR_FIELDS),
        aliases=VENDOR_ALIASES,
        lookup_requirements=tuple(VENDOR_LOOKUPS),
    ),
}


def get_entity_adapter(entity_type: Union[str, EntityType]) -> EntityAdapter:
    """Resolve an entity type (``"StockItem"``, ``"Customer"``, ``"Vendor"``)."""
    key = entity_type.value if isinstance(entity_type, EntityType) else str(entity_type)
    adapter = ENTITY_ADAPTERS.get(key)
    if adapter is None:
        raise UnknownEntityTypeError(key)
    return adapter
