"""Exporters for import results."""

from .csv_exporter import CsvLogExporter

__all__ = ["CsvLogExporter"]
