"""Builds Acumatica API records from spreadsheet rows."""

from .record_builder import build_acumatica_record, coerce_value, get_record_value, set_nested_value

__all__ = ["build_acumatica_record", "coerce_value", "set_nested_value", "get_record_value"]
