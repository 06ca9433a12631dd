"""Factory for creating the right parser based on file type."""
from pathlib import Path
from typing import Optional

from acuimport.parser.base import ParsedFile, SpreadsheetParser
from acuimport.parser.csv_parser import CsvParser
from acuimport.parser.excel_parser import ExcelParser


class ParserFactory:
    """Factory for spreadsheet parsers."""

    PARSERS = {
        "csv": CsvParser,
        "txt": CsvParser,
        "xlsx": ExcelParser,
        "xlsm": ExcelParser,
    }

    @staticmethod
    def create_parser(file_path: str) -> SpreadsheetParser:
        """
        Create parser based on file extension.

        Raises:
            ValueError: If file format is not supported
        """
        ext = Path(str(file_path)).suffix.lower().lstrip(".")
        parser_class = ParserFactory.PARSERS.get(ext)
        if parser_class is None:
            raise ValueError(f"Unsupported file format: {ext or 'unknown'}")
        return parser_class()

    @staticmethod
    def parse_file(file_path: str, sheet: Optional[str] = None) -> ParsedFile:
        """Read and parse a file from disk."""
        path = Path(file_path)
        parser = ParserFactory.create_parser(path.name)
        return parser.parse(path.read_bytes(), path.name, sheet=sheet)
