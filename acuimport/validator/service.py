"""Validation of a whole file against a live connection."""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from acuimport.api.factory import GatewayFactory
from acuimport.importer.errors import ConnectionNotFoundError
from acuimport.mapper.mapping import FieldMapping
from acuimport.schema.adapters import get_entity_adapter
from acuimport.schema.models import ImportMode
from acuimport.store.base import ImportStore
from acuimport.validator.engine import validate_rows
from acuimport.validator.lookups import fetch_lookup_data
from acuimport.validator.models import LookupContext, LookupProgress, RowStatus, RowValidationResult

logger = logging.getLogger(__name__)


@dataclass
class ValidationRequest:
    connection_id: str
    entity_type: str
    mode: ImportMode
    rows: List[Dict[str, str]]
    mappings: List[FieldMapping]
    default_values: Dict[str, str] = field(default_factory=dict)
    user_id: Optional[str] = None


@dataclass
class ValidationResponse:
    validation_results: List[RowValidationResult]
    lookup_warnings: List[str]
    summary: Dict[str, int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "validation_results": [r.to_dict() for r in self.validation_results],
            "lookup_warnings": list(self.lookup_warnings),
            "summary": dict(self.summary),
        }


def summarize(results: List[RowValidationResult]) -> Dict[str, int]:
    return {
        "total": len(results),
        "pass": sum(1 for r in results if r.status == RowStatus.PASS),
        "warn": sum(1 for r in results if r.status == RowStatus.WARN),
        "fail": sum(1 for r in results if r.status == RowStatus.FAIL),
    }


class ValidationService:
    """Fetches reference data for a connection and validates rows against it."""

    def __init__(self, store: ImportStore, gateways: GatewayFactory):
        self.store = store
        self.gateways = gateways

    def validate(
        self,
        request: ValidationRequest,
        on_progress: Optional[Callable[[LookupProgress], None]] = None,
    ) -> ValidationResponse:
        """
        Validate a request.

        Args:
            request: Rows, mappings and the connection to check against
            on_progress: Lookup fetch progress callback

        Returns:
            ValidationResponse

        Raises:
            ConnectionNotFoundError: unknown connection
            CredentialsError: connection credentials could not be decoded
            UnknownEntityTypeError: unsupported entity type
        """
        connection = self.store.get_connection(request.connection_id, request.user_id)
        if connection is None:
            raise ConnectionNotFoundError(request.connection_id)

        adapter = get_entity_adapter(request.entity_type)
        gateway = self.gateways.create(connection)
        mode = ImportMode(request.mode)

        lookup_result = fetch_lookup_data(gateway, list(adapter.lookup_requirements), on_progress)
        warnings = list(lookup_result.warnings)

        existing_keys = None
        if mode in (ImportMode.CREATE, ImportMode.UPDATE):
            try:
                existing_keys = adapter.fetch_existing_keys(gateway)
            except Exception as e:
                message = getattr(e, "message", None) or str(e) or "Unknown error"
                logger.warning(f"Existing key fetch failed for {adapter.label}: {message}")
                warnings.append(
                    f"Failed to fetch existing keys: {message}. Mode-based validation will be skipped."
                )

        results = validate_rows(
            request.rows,
            request.mappings,
            request.default_values,
            adapter.fields,
            adapter.key_field,
            LookupContext(lookups=lookup_result.lookups, existing_keys=existing_keys),
            mode,
        )

        summary = summarize(results)
        logger.info(
            f"Validated {summary['total']} {adapter.label}: "
            f"{summary['pass']} pass, {summary['warn']} warn, {summary['fail']} fail"
        )
        return ValidationResponse(results, warnings, summary)
