"""CSV file parser with auto-delimiter detection."""
import csv
from io import StringIO
from typing import List, Optional

from acuimport.parser.base import ParsedFile, ParseError, SpreadsheetParser


class CsvParser(SpreadsheetParser):
    """Parse CSV files into headers and string rows."""

    # Common delimiters
    DELIMITERS = [",", ";", "|", "\t"]

    def parse(self, content: bytes, file_name: str, sheet: Optional[str] = None) -> ParsedFile:
        text = self._decode(content)
        delimiter = self._detect_delimiter(text)

        try:
            records = list(csv.reader(StringIO(text), delimiter=delimiter))
        except csv.Error as e:
            raise ParseError(f"CSV parse error: {e}")

        records = [r for r in records if r]
        if not records:
            return ParsedFile(file_name=file_name, file_size=len(content), headers=[], rows=[])

        headers, rows = self.build_rows(records[0], records[1:])
        return ParsedFile(file_name=file_name, file_size=len(content), headers=headers, rows=rows)

    @staticmethod
    def _decode(content: bytes) -> str:
        if isinstance(content, str):
            text = content
        else:
            try:
                text = content.decode("utf-8")
            except UnicodeDecodeError:
                text = content.decode("latin-1")
        return text.lstrip("\ufeff")

    def _detect_delimiter(self, content: str) -> str:
        """
        Auto-detect CSV delimiter from the header line.

        Returns:
            str: Most likely delimiter
        """
        first_line = content.split("\n", 1)[0]

        counts = {delimiter: first_line.count(delimiter) for delimiter in self.DELIMITERS}
        best_delimiter = max(counts, key=counts.get)

        # Fallback to comma if no clear winner
        if counts[best_delimiter] == 0:
            return ","

        return best_delimiter
