"""
Unit tests for validation

Tests:
- ValidationEngine: required fields, types, max length, duplicates, mode keys, lookups
- fetch_lookup_data: value collection, degradation, progress
- ValidationService: lookups + existing keys + summary
"""

from unittest.mock import Mock

import pytest

from acuimport.api.errors import ApiError
from acuimport.importer.errors import ConnectionNotFoundError
from acuimport.mapper.mapping import FieldMapping, MatchConfidence
from acuimport.schema.models import EntityField, FieldType, ImportMode, LookupRequirement
from acuimport.schema.stock_item import STOCK_ITEM_FIELDS
from acuimport.schema.vendor import VENDOR_FIELDS
from acuimport.store.memory import InMemoryStore
from acuimport.store.models import Connection
from acuimport.validator.engine import EMPTY_ROW_MESSAGE, validate_rows
from acuimport.validator.lookups import fetch_lookup_data
from acuimport.validator.models import (
    LookupContext,
    LookupProgress,
    RowStatus,
    RowValidationResult,
    ValidationError,
    ValidationWarning,
)
from acuimport.validator.service import ValidationRequest, ValidationService


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def stock_mappings():
    """Mappings covering every required stock item field plus price"""
    pairs = [
        ("SKU", "InventoryID"),
        ("Name", "Description"),
        ("Class", "ItemClass"),
        ("Type", "ItemType"),
        ("Status", "ItemStatus"),
        ("UOM", "BaseUOM"),
        ("Price", "DefaultPrice"),
    ]
    return [FieldMapping(source, target, MatchConfidence.EXACT) for source, target in pairs]


@pytest.fixture
def valid_row():
    return {
        "SKU": "A-1",
        "Name": "Widget",
        "Class": "ALLOTHER",
        "Type": "Finished Good",
        "Status": "Active",
        "UOM": "EA",
        "Price": "10",
    }


@pytest.fixture
def validate(stock_mappings):
    """validate_rows bound to the stock item schema"""

    def run(rows, mode=ImportMode.CREATE_OR_UPDATE, lookups=None, default_values=None, mappings=None):
        return validate_rows(
            rows,
            stock_mappings if mappings is None else mappings,
            default_values or {},
            STOCK_ITEM_FIELDS,
            "InventoryID",
            lookups or LookupContext(),
            mode,
        )

    return run


def messages(result):
    return [e.message for e in result.errors]


# ============================================================================
# TEST: RowValidationResult
# ============================================================================


class TestRowStatus:
    """Tests for status derivation"""

    def test_status_is_derived_from_issues(self):
        assert RowValidationResult(0).status == RowStatus.PASS
        assert RowValidationResult(0, warnings=[ValidationWarning("f", "w")]).status == RowStatus.WARN
        assert (
            RowValidationResult(
                0, errors=[ValidationError("f", "e")], warnings=[ValidationWarning("f", "w")]
            ).status
            == RowStatus.FAIL
        )

    def test_to_dict(self):
        result = RowValidationResult(3, warnings=[ValidationWarning("ItemClass", "close", "a", suggestion="A")])

        assert result.to_dict() == {
            "row_index": 3,
            "status": "warn",
            "errors": [],
            "warnings": [{"field": "ItemClass", "message": "close", "value": "a", "suggestion": "A"}],
        }


# ============================================================================
# TEST: ValidationEngine
# ============================================================================


class TestValidationEngine:
    """Tests for row validation rules"""

    def test_valid_row_passes(self, validate, valid_row):
        [result] = validate([valid_row])

        assert result.status == RowStatus.PASS
        assert result.row_index == 0

    def test_empty_row_short_circuits(self, validate):
        [result] = validate([{"SKU": " ", "Name": ""}])

        assert result.status == RowStatus.WARN
        assert result.errors == []
        assert result.warnings == [ValidationWarning("_row", EMPTY_ROW_MESSAGE)]

    def test_required_field_empty(self, validate, valid_row):
        valid_row["Name"] = "  "

        [result] = validate([valid_row])

        assert messages(result) == ['Required field "Description" is empty']

    def test_required_field_unmapped(self, validate, valid_row, stock_mappings):
        mappings = [m for m in stock_mappings if m.target_field != "BaseUOM"]

        [result] = validate([valid_row], mappings=mappings)

        assert messages(result) == ['Required field "Base UOM" is empty']

    def test_default_satisfies_required(self, validate, valid_row):
        valid_row["Name"] = ""

        [result] = validate([valid_row], default_values={"Description": "Generic"})

        assert result.status == RowStatus.PASS

    def test_decimal_type(self, validate, valid_row):
        valid_row["Price"] = "N/A"
        [bad] = validate([valid_row])

        valid_row["Price"] = "$1,234.50"
        [good] = validate([valid_row])

        assert messages(bad) == ['"Default Price" expects a number, got "N/A"']
        assert good.status == RowStatus.PASS

    def test_integer_type(self):
        fields = [EntityField("Quantity", "Qty", FieldType.INTEGER)]
        mappings = [FieldMapping("Qty", "Qty", MatchConfidence.EXACT)]
        rows = [{"Qty": "12"}, {"Qty": "1,000"}, {"Qty": "12.5"}, {"Qty": "many"}]

        results = validate_rows(rows, mappings, {}, fields, "Id", LookupContext(), ImportMode.CREATE)

        assert [r.status for r in results] == [RowStatus.PASS, RowStatus.PASS, RowStatus.FAIL, RowStatus.FAIL]
        assert messages(results[3]) == ['"Quantity" expects an integer, got "many"']

    def test_boolean_type(self):
        mappings = [FieldMapping("LC", "LandedCostVendor", MatchConfidence.EXACT)]
        rows = [{"LC": "Yes"}, {"LC": "0"}, {"LC": "sometimes"}]

        results = validate_rows(rows, mappings, {}, VENDOR_FIELDS, "VendorID", LookupContext(), ImportMode.CREATE)

        assert '"Landed Cost Vendor" expects a boolean, got "sometimes"' in messages(results[2])
        assert not any("boolean" in m for m in messages(results[0]) + messages(results[1]))

    def test_max_length_warning(self, validate, valid_row):
        valid_row["Name"] = "x" * 300

        [result] = validate([valid_row])

        assert result.status == RowStatus.WARN
        assert result.warnings[0].message == '"Description" exceeds max length of 256 (got 300)'

    def test_duplicate_keys(self, validate, valid_row):
        other = dict(valid_row, SKU="B-1")

        results = validate([valid_row, other, dict(valid_row)])

        assert messages(results[0]) == ['Duplicate key "A-1" found in file']
        assert results[1].status == RowStatus.PASS
        assert messages(results[2]) == ['Duplicate key "A-1" found in file']

    def test_duplicates_need_mapped_key(self, validate, valid_row, stock_mappings):
        mappings = [m for m in stock_mappings if m.target_field != "InventoryID"]

        results = validate(
            [valid_row, dict(valid_row)], mappings=mappings, default_values={"InventoryID": "SAME"}
        )

        assert all(r.status == RowStatus.PASS for r in results)

    def test_create_mode_existing_key(self, validate, valid_row):
        [result] = validate([valid_row], ImportMode.CREATE, LookupContext(existing_keys={"A-1"}))

        assert messages(result) == ['Key "A-1" already exists in Acumatica (Create Only mode)']

    def test_update_mode_missing_key(self, validate, valid_row):
        [result] = validate([valid_row], ImportMode.UPDATE, LookupContext(existing_keys={"Z-9"}))

        assert messages(result) == ['Key "A-1" not found in Acumatica (Update Only mode)']

    def test_update_mode_unknown_keys_is_skipped(self, validate, valid_row):
        [result] = validate([valid_row], ImportMode.UPDATE, LookupContext(existing_keys=None))

        assert result.status == RowStatus.PASS

    def test_create_or_update_ignores_existing(self, validate, valid_row):
        [result] = validate([valid_row], ImportMode.CREATE_OR_UPDATE, LookupContext(existing_keys={"A-1"}))

        assert result.status == RowStatus.PASS

    def test_lookup_case_mismatch_warns(self, validate, valid_row):
        valid_row["Class"] = "allother"

        [result] = validate([valid_row], lookups=LookupContext(lookups={"ItemClass": {"ALLOTHER", "PARTS"}}))

        assert result.status == RowStatus.WARN
        warning = result.warnings[0]
        assert warning.field == "ItemClass"
        assert warning.suggestion == "ALLOTHER"
        assert warning.message == '"allother" is close to "ALLOTHER", check casing'

    def test_lookup_miss_fails(self, validate, valid_row):
        valid_row["Class"] = "BOGUS"

        [result] = validate([valid_row], lookups=LookupContext(lookups={"ItemClass": {"ALLOTHER"}}))

        assert messages(result) == ['"BOGUS" is not a valid value for ItemClass']

    def test_empty_lookup_set_is_skipped(self, validate, valid_row):
        valid_row["Class"] = "BOGUS"

        [result] = validate([valid_row], lookups=LookupContext(lookups={"ItemClass": set()}))

        assert result.status == RowStatus.PASS

    def test_one_result_per_row(self, validate, valid_row):
        results = validate([valid_row, {}, dict(valid_row, SKU="B-2")])

        assert [r.row_index for r in results] == [0, 1, 2]


# ============================================================================
# TEST: fetch_lookup_data
# ============================================================================


class TestFetchLookupData:
    """Tests for reference data fetching"""

    def test_collects_values_and_degrades(self):
        requirements = [
            LookupRequirement("ItemClass", "ItemClass", "ClassID", "Item Classes"),
            LookupRequirement("BaseUOM", "UnitOfMeasure", "UOM", "Units of Measure"),
        ]
        gateway = Mock()
        gateway.get.side_effect = [
            [{"ClassID": {"value": " ALLOTHER "}}, {"ClassID": {"value": ""}}, {"ClassID": {}}, {"ClassID": {"value": "PARTS"}}],
            ApiError(500, "boom"),
        ]
        progress = []

        result = fetch_lookup_data(gateway, requirements, progress.append)

        gateway.get.assert_any_call("/ItemClass?$select=ClassID")
        gateway.get.assert_any_call("/UnitOfMeasure?$select=UOM")
        assert result.lookups == {"ItemClass": {"ALLOTHER", "PARTS"}, "BaseUOM": set()}
        assert result.warnings == [
            "Failed to fetch Units of Measure: boom. Lookup validation will be skipped for this field."
        ]
        assert progress == [
            LookupProgress(0, 2, "Item Classes"),
            LookupProgress(1, 2, "Units of Measure"),
            LookupProgress(2, 2, "Done"),
        ]

    def test_no_requirements(self):
        result = fetch_lookup_data(Mock(), [])

        assert result.lookups == {}
        assert result.warnings == []


# ============================================================================
# TEST: ValidationService
# ============================================================================


class TestValidationService:
    """Tests for the validation request/response flow"""

    @pytest.fixture
    def store(self):
        store = InMemoryStore()
        store.save_connection(
            Connection(id="c1", user_id="u1", name="Prod", instance_url="https://erp", credentials="{}")
        )
        return store

    @pytest.fixture
    def gateway(self):
        gateway = Mock()

        def get(path):
            if path == "/StockItem?$select=InventoryID":
                return [{"InventoryID": {"value": "A-1"}}]
            return []

        gateway.get.side_effect = get
        return gateway

    @pytest.fixture
    def service(self, store, gateway):
        gateways = Mock()
        gateways.create.return_value = gateway
        return ValidationService(store, gateways)

    def request(self, mode, rows, mappings, user_id="u1", connection_id="c1"):
        return ValidationRequest(
            connection_id=connection_id,
            entity_type="StockItem",
            mode=mode,
            rows=rows,
            mappings=mappings,
            user_id=user_id,
        )

    def test_create_mode_uses_existing_keys(self, service, valid_row, stock_mappings):
        rows = [valid_row, dict(valid_row, SKU="B-1"), {}]

        response = service.validate(self.request(ImportMode.CREATE, rows, stock_mappings))

        assert response.summary == {"total": 3, "pass": 1, "warn": 1, "fail": 1}
        assert response.lookup_warnings == []
        assert response.to_dict()["validation_results"][0]["status"] == "fail"

    def test_create_or_update_skips_existing_keys(self, service, gateway, valid_row, stock_mappings):
        response = service.validate(self.request(ImportMode.CREATE_OR_UPDATE, [valid_row], stock_mappings))

        paths = [c.args[0] for c in gateway.get.call_args_list]
        assert "/StockItem?$select=InventoryID" not in paths
        assert response.summary["pass"] == 1

    def test_existing_key_failure_is_a_warning(self, service, gateway, valid_row, stock_mappings):
        def get(path):
            if path.startswith("/StockItem"):
                raise ApiError(500, "down")
            return []

        gateway.get.side_effect = get

        response = service.validate(self.request(ImportMode.UPDATE, [valid_row], stock_mappings))

        assert response.lookup_warnings == [
            "Failed to fetch existing keys: down. Mode-based validation will be skipped."
        ]
        assert response.summary["pass"] == 1

    def test_unknown_connection(self, service, valid_row, stock_mappings):
        with pytest.raises(ConnectionNotFoundError):
            service.validate(self.request(ImportMode.CREATE, [valid_row], stock_mappings, connection_id="nope"))

    def test_other_users_connection(self, service, valid_row, stock_mappings):
        with pytest.raises(ConnectionNotFoundError):
            service.validate(self.request(ImportMode.CREATE, [valid_row], stock_mappings, user_id="u2"))
