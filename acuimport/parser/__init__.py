"""CSV and Excel parsing."""

from .base import ParsedFile, ParseError, deduplicate_headers, sanitize_header
from .csv_parser import CsvParser
from .excel_parser import ExcelParser
from .parser_factory import ParserFactory

__all__ = [
    "ParsedFile",
    "ParseError",
    "CsvParser",
    "ExcelParser",
    "ParserFactory",
    "sanitize_header",
    "deduplicate_headers",
]
