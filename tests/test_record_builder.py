"""
Unit tests for the record builder
"""

import pytest

from acuimport.builder.record_builder import (
    build_acumatica_record,
    coerce_value,
    get_record_value,
    set_nested_value,
)
from acuimport.mapper.mapping import FieldMapping, MatchConfidence
from acuimport.schema.customer import CUSTOMER_FIELDS
from acuimport.schema.models import EntityField, FieldType
from acuimport.schema.stock_item import STOCK_ITEM_FIELDS


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def decimal_field():
    return EntityField("Price", "DefaultPrice", FieldType.DECIMAL)


@pytest.fixture
def integer_field():
    return EntityField("Qty", "Qty", FieldType.INTEGER)


@pytest.fixture
def boolean_field():
    return EntityField("Tax Agency", "TaxAgency", FieldType.BOOLEAN)


def mapping(source, target, default=None, ignored=False):
    return FieldMapping(source, target, MatchConfidence.EXACT, default_value=default, ignored=ignored)


# ============================================================================
# TEST: coerce_value
# ============================================================================


class TestCoerceValue:
    """Tests for type coercion"""

    def test_decimal_strips_separators(self, decimal_field):
        assert coerce_value("1,234.50", decimal_field) == 1234.5
        assert coerce_value("$99", decimal_field) == 99.0

    def test_decimal_falls_back_to_raw(self, decimal_field):
        assert coerce_value(" N/A ", decimal_field) == "N/A"

    def test_integer(self, integer_field):
        assert coerce_value("1,200", integer_field) == 1200
        assert isinstance(coerce_value("12.0", integer_field), int)
        assert coerce_value("12.5", integer_field) == "12.5"

    @pytest.mark.parametrize("raw,expected", [("yes", True), ("Y", True), ("1", True), ("False", False), ("n", False)])
    def test_boolean_tokens(self, boolean_field, raw, expected):
        assert coerce_value(raw, boolean_field) is expected

    def test_boolean_falls_back_to_raw(self, boolean_field):
        assert coerce_value("maybe", boolean_field) == "maybe"

    def test_string_is_trimmed(self):
        assert coerce_value("  A-1  ", EntityField("Id", "InventoryID")) == "A-1"

    def test_unknown_field_keeps_string(self):
        assert coerce_value("42", None) == "42"

    def test_empty_is_none(self, decimal_field):
        assert coerce_value("   ", decimal_field) is None


# ============================================================================
# TEST: nesting helpers
# ============================================================================


class TestNestedValues:
    """Tests for dotted-path helpers"""

    def test_flat_path(self):
        record = {}
        set_nested_value(record, "CustomerID", "C1")

        assert record == {"CustomerID": {"value": "C1"}}

    def test_dotted_paths_share_parent(self):
        record = {}
        set_nested_value(record, "MainAddress.City", "Austin")
        set_nested_value(record, "MainAddress.State", "TX")

        assert record == {"MainAddress": {"City": {"value": "Austin"}, "State": {"value": "TX"}}}
        assert get_record_value(record, "MainAddress.State") == "TX"

    def test_missing_path(self):
        assert get_record_value({"A": {"value": 1}}, "B") is None
        assert get_record_value({"A": {"value": 1}}, "A.B") is None


# ============================================================================
# TEST: build_acumatica_record
# ============================================================================


class TestBuildRecord:
    """Tests for whole-row record building"""

    def test_builds_typed_record(self):
        row = {"SKU": " A-1 ", "Price": "1,234.50", "Name": "Widget"}
        mappings = [
            mapping("SKU", "InventoryID"),
            mapping("Price", "DefaultPrice"),
            mapping("Name", "Description"),
        ]

        record = build_acumatica_record(row, mappings, STOCK_ITEM_FIELDS)

        assert record == {
            "InventoryID": {"value": "A-1"},
            "DefaultPrice": {"value": 1234.5},
            "Description": {"value": "Widget"},
        }

    def test_default_used_for_empty_cell(self):
        row = {"Class": ""}
        record = build_acumatica_record(row, [mapping("Class", "ItemClass", default="ALLOTHER")], STOCK_ITEM_FIELDS)

        assert record == {"ItemClass": {"value": "ALLOTHER"}}

    def test_empty_without_default_is_skipped(self):
        record = build_acumatica_record({"Price": "  "}, [mapping("Price", "DefaultPrice")], STOCK_ITEM_FIELDS)

        assert record == {}

    def test_ignored_and_unmapped_columns_skipped(self):
        row = {"A": "1", "B": "2"}
        mappings = [mapping("A", "Weight", ignored=True), FieldMapping("B")]

        assert build_acumatica_record(row, mappings, STOCK_ITEM_FIELDS) == {}

    def test_unparseable_decimal_passes_through(self):
        record = build_acumatica_record({"Price": "N/A"}, [mapping("Price", "DefaultPrice")], STOCK_ITEM_FIELDS)

        assert record == {"DefaultPrice": {"value": "N/A"}}

    def test_nested_paths(self):
        row = {"City": "Austin", "Zip": "78701", "Id": "C1"}
        mappings = [
            mapping("Id", "CustomerID"),
            mapping("City", "MainAddress.City"),
            mapping("Zip", "MainAddress.PostalCode"),
        ]

        record = build_acumatica_record(row, mappings, CUSTOMER_FIELDS)

        assert record["MainAddress"] == {"City": {"value": "Austin"}, "PostalCode": {"value": "78701"}}
        assert record["CustomerID"] == {"value": "C1"}
