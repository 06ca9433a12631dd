"""
Unit tests for the Acumatica error humanizer
"""

import pytest

from acuimport.api.error_parser import MAX_MESSAGE_LENGTH, extract_inner_message, humanize_error


class TestHumanizeError:
    """Tests for humanize_error rules"""

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty_message(self, raw):
        assert humanize_error(raw) == "Unknown error"

    def test_px_exception_wrapper_is_unwrapped(self):
        raw = "PX.Data.PXException: Error: 'ABC-1' cannot be found in the system."

        assert humanize_error(raw) == 'Record "ABC-1" was not found in Acumatica'

    def test_px_exception_wrapper_ignores_case(self):
        assert humanize_error("px.data.pxexception: Item class is inactive") == "Item class is inactive"

    def test_failed_insert_without_details(self):
        raw = "Inserting 'Stock Item' record raised at least one error."

        assert humanize_error(raw) == "Failed to create Stock Item record"

    def test_failed_insert_needs_punctuation_after_error(self):
        raw = "Inserting 'Stock Item' record raised at least one error"

        assert humanize_error(raw) == raw
        assert humanize_error(raw + "s occurred") == raw + "s occurred"

    def test_failed_insert_with_inner_message(self):
        raw = "Inserting 'Customer' record raised at least one error: duplicate key value violates constraint"

        assert humanize_error(raw) == "Failed to create Customer record: A record with this key already exists"

    def test_processing_error_recurses_into_detail(self):
        raw = "An error occurred during processing of the field Status. Timeout expired"

        assert humanize_error(raw) == "The request timed out. The Acumatica server may be busy."

    def test_processing_error_without_detail(self):
        assert humanize_error("An error occurred during processing.") == "An error occurred during processing"

    @pytest.mark.parametrize(
        "raw",
        [
            "Cannot insert duplicate key row in object",
            "The record already exists",
            "violates unique constraint \"pk\"",
        ],
    )
    def test_duplicate_key(self, raw):
        assert humanize_error(raw) == "A record with this key already exists"

    def test_required_field(self):
        raw = "The field is required: 'CustomerClass'"

        assert humanize_error(raw) == 'Required field "CustomerClass" is missing or empty'

    def test_numbered_error_prefix(self):
        raw = "Error #12: Another process has updated the record"

        assert humanize_error(raw) == "The record was modified or deleted by another process. Try again."

    def test_authentication(self):
        assert humanize_error("401 Unauthorized") == "Authentication failed. Check your connection credentials."

    def test_unmatched_message_loses_prefixes(self):
        assert humanize_error("Error: Something odd happened") == "Something odd happened"
        assert humanize_error("Exception: Error: nested prefix") == "nested prefix"

    def test_long_message_is_capped(self):
        result = humanize_error("a" * 400)

        assert len(result) == MAX_MESSAGE_LENGTH
        assert result.endswith("...")

    def test_recursion_is_bounded(self):
        raw = "PX.A.BException: " * 10 + "final words"

        result = humanize_error(raw)

        assert result.endswith("final words")


class TestExtractInnerMessage:
    """Tests for extract_inner_message"""

    def test_innermost_message_wins(self):
        error_json = {
            "message": "An error has occurred.",
            "exceptionMessage": "outer",
            "innerException": {
                "message": "middle",
                "innerException": {"exceptionMessage": "inner"},
            },
        }

        assert extract_inner_message(error_json) == "inner"

    def test_top_level_only(self):
        assert extract_inner_message({"message": "only"}) == "only"

    def test_not_a_dict(self):
        assert extract_inner_message("text") is None
        assert extract_inner_message({}) is None
