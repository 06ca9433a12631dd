"""Spreadsheet import pipeline for Acumatica ERP."""

__version__ = "0.1.0"
