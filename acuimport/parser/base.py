"""Parsed file contract and the abstract parser base class."""
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")
_WHITESPACE_RE = re.compile(r"\s+")


class ParseError(Exception):
    """The file could not be read as a spreadsheet."""


@dataclass
class ParsedFile:
    """Spreadsheet content ready for mapping."""

    file_name: str
    file_size: int
    headers: List[str]
    rows: List[Dict[str, str]]
    sheet_names: List[str] = field(default_factory=list)
    selected_sheet: Optional[str] = None

    @property
    def total_rows(self) -> int:
        return len(self.rows)

    @property
    def total_columns(self) -> int:
        return len(self.headers)


def sanitize_header(header: str) -> str:
    """Drop control characters and collapse whitespace."""
    return _WHITESPACE_RE.sub(" ", _CONTROL_CHARS_RE.sub("", header or "")).strip()


def deduplicate_headers(headers: List[str]) -> List[str]:
    """Suffix repeated headers (case-insensitive) with " (2)", " (3)" and so on."""
    seen: Dict[str, int] = {}
    result = []
    for header in headers:
        key = header.lower()
        count = seen.get(key, 0)
        seen[key] = count + 1
        result.append(header if count == 0 else f"{header} ({count + 1})")
    return result


class SpreadsheetParser(ABC):
    """Abstract base class for spreadsheet parsers."""

    @abstractmethod
    def parse(self, content: bytes, file_name: str, sheet: Optional[str] = None) -> ParsedFile:
        """
        Parse file content.

        Args:
            content: Raw file bytes
            file_name: Original file name
            sheet: Sheet to read, for workbook formats

        Returns:
            ParsedFile

        Raises:
            ParseError: If parsing fails
        """
        pass

    @staticmethod
    def build_rows(raw_headers: List[str], records: List[List[str]]) -> Tuple[List[str], List[Dict[str, str]]]:
        """Clean the header row and key each record by it, dropping blank records."""
        headers = deduplicate_headers([sanitize_header(h) for h in raw_headers])
        rows = []
        for record in records:
            if all(not (value or "").strip() for value in record):
                continue
            rows.append(
                {header: (record[i] if i < len(record) else "") or "" for i, header in enumerate(headers)}
            )
        return headers, rows
