"""Row validation against field rules, lookups and the import mode."""
import logging
from typing import Dict, Iterable, List, Mapping, Optional

from acuimport.builder.record_builder import parse_boolean, parse_number
from acuimport.mapper.mapping import FieldMapping
from acuimport.schema.models import EntityField, FieldType, ImportMode
from acuimport.validator.models import (
    LookupContext,
    RowValidationResult,
    ValidationError,
    ValidationWarning,
)

logger = logging.getLogger(__name__)

EMPTY_ROW_MESSAGE = "Row is entirely empty and will be skipped"


def is_empty_row(row: Mapping[str, str]) -> bool:
    return all(not (value or "").strip() for value in row.values())


def _cell(row: Mapping[str, str], column: Optional[str]) -> str:
    return (row.get(column) or "").strip() if column else ""


def _default(default_values: Mapping[str, str], api_name: str) -> str:
    return (default_values.get(api_name) or "").strip()


class ValidationEngine:
    """Validates parsed rows before anything is sent to Acumatica.

    Pure: all remote data comes in through the ``LookupContext``.
    """

    def __init__(
        self,
        mappings: List[FieldMapping],
        fields: Iterable[EntityField],
        key_field: str,
        default_values: Optional[Mapping[str, str]] = None,
        lookups: Optional[LookupContext] = None,
        mode: ImportMode = ImportMode.CREATE_OR_UPDATE,
    ):
        self.mappings = [m for m in mappings if m.is_active]
        self.fields = list(fields)
        self.field_map = {f.api_name: f for f in self.fields}
        self.key_field = key_field
        self.default_values = dict(default_values or {})
        self.lookups = lookups or LookupContext()
        self.mode = ImportMode(mode)

        self.target_to_source: Dict[str, str] = {
            m.target_field: m.source_column for m in self.mappings
        }

    def validate(self, rows: List[Mapping[str, str]]) -> List[RowValidationResult]:
        """Validate every row; one result per row, in order."""
        duplicate_keys = self._find_duplicate_keys(rows)
        results = [self.validate_row(i, row, duplicate_keys) for i, row in enumerate(rows)]

        failed = sum(1 for r in results if r.errors)
        logger.debug(f"Validated {len(rows)} rows, {failed} failed")
        return results

    def _key_value(self, row: Mapping[str, str]) -> str:
        return _cell(row, self.target_to_source.get(self.key_field)) or _default(
            self.default_values, self.key_field
        )

    def _find_duplicate_keys(self, rows: List[Mapping[str, str]]) -> set:
        # key values are only known when the key field is mapped
        if self.key_field not in self.target_to_source:
            return set()

        seen: Dict[str, int] = {}
        for row in rows:
            key = self._key_value(row)
            if key:
                seen[key] = seen.get(key, 0) + 1
        return {key for key, count in seen.items() if count > 1}

    def validate_row(self, index: int, row: Mapping[str, str], duplicate_keys: set) -> RowValidationResult:
        result = RowValidationResult(row_index=index)

        if is_empty_row(row):
            result.warnings.append(ValidationWarning("_row", EMPTY_ROW_MESSAGE))
            return result

        key_value = self._key_value(row)

        self._check_required(row, result)
        self._check_types(row, result)
        self._check_keys(key_value, duplicate_keys, result)
        self._check_lookups(row, result)

        return result

    def _effective_value(self, row: Mapping[str, str], mapping: FieldMapping) -> str:
        return _cell(row, mapping.source_column) or _default(self.default_values, mapping.target_field)

    def _check_required(self, row: Mapping[str, str], result: RowValidationResult):
        for field in self.fields:
            if not field.required:
                continue
            value = _cell(row, self.target_to_source.get(field.api_name))
            if not value and not _default(self.default_values, field.api_name):
                result.errors.append(
                    ValidationError(field.api_name, f'Required field "{field.name}" is empty')
                )

    def _check_types(self, row: Mapping[str, str], result: RowValidationResult):
        for mapping in self.mappings:
            value = self._effective_value(row, mapping)
            if not value:
                continue

            field = self.field_map.get(mapping.target_field.split(".")[0])
            if field is None:
                continue

            expected = None
            if field.type == FieldType.DECIMAL and parse_number(value) is None:
                expected = "a number"
            elif field.type == FieldType.INTEGER:
                number = parse_number(value)
                if number is None or not number.is_integer():
                    expected = "an integer"
            elif field.type == FieldType.BOOLEAN and parse_boolean(value) is None:
                expected = "a boolean"

            if expected:
                result.errors.append(
                    ValidationError(
                        field.api_name, f'"{field.name}" expects {expected}, got "{value}"', value
                    )
                )

            if field.max_length and len(value) > field.max_length:
                result.warnings.append(
                    ValidationWarning(
                        field.api_name,
                        f'"{field.name}" exceeds max length of {field.max_length} (got {len(value)})',
                        value,
                    )
                )

    def _check_keys(self, key_value: str, duplicate_keys: set, result: RowValidationResult):
        if not key_value:
            return

        if key_value in duplicate_keys:
            result.errors.append(
                ValidationError(self.key_field, f'Duplicate key "{key_value}" found in file', key_value)
            )

        existing = self.lookups.existing_keys
        if existing is None:
            return

        if self.mode == ImportMode.CREATE and key_value in existing:
            result.errors.append(
                ValidationError(
                    self.key_field,
                    f'Key "{key_value}" already exists in Acumatica (Create Only mode)',
                    key_value,
                )
            )
        elif self.mode == ImportMode.UPDATE and key_value not in existing:
            result.errors.append(
                ValidationError(
                    self.key_field,
                    f'Key "{key_value}" not found in Acumatica (Update Only mode)',
                    key_value,
                )
            )

    def _check_lookups(self, row: Mapping[str, str], result: RowValidationResult):
        for mapping in self.mappings:
            value = self._effective_value(row, mapping)
            if not value:
                continue

            valid = self.lookups.lookups.get(mapping.target_field)
            if not valid or value in valid:
                continue

            upper = value.upper()
            close = next((v for v in sorted(valid) if v.upper() == upper), None)
            if close:
                result.warnings.append(
                    ValidationWarning(
                        mapping.target_field,
                        f'"{value}" is close to "{close}", check casing',
                        value,
                        suggestion=close,
                    )
                )
            else:
                result.errors.append(
                    ValidationError(
                        mapping.target_field,
                        f'"{value}" is not a valid value for {mapping.target_field}',
                        value,
                    )
                )


def validate_rows(
    rows: List[Mapping[str, str]],
    mappings: List[FieldMapping],
    default_values: Optional[Mapping[str, str]],
    fields: Iterable[EntityField],
    key_field: str,
    lookups: Optional[LookupContext],
    mode: ImportMode,
) -> List[RowValidationResult]:
    """Validate all rows against entity rules, lookups and import mode."""
    engine = ValidationEngine(mappings, fields, key_field, default_values, lookups, mode)
    return engine.validate(rows)
