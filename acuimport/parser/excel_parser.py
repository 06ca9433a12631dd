"""Excel file parser with sheet selection."""
from datetime import date, datetime, time
from io import BytesIO
from typing import Any, Optional

from openpyxl import load_workbook

from acuimport.parser.base import ParsedFile, ParseError, SpreadsheetParser


def cell_to_str(value: Any) -> str:
    """Render a cell value as the text a user sees."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


class ExcelParser(SpreadsheetParser):
    """Parse one sheet of an .xlsx workbook."""

    def parse(self, content: bytes, file_name: str, sheet: Optional[str] = None) -> ParsedFile:
        """
        Parse a workbook.

        Args:
            content: Workbook bytes
            file_name: Original file name
            sheet: Sheet name; the first sheet when missing or unknown

        Returns:
            ParsedFile with the workbook's sheet names
        """
        try:
            wb = load_workbook(BytesIO(content), read_only=True, data_only=True)
        except Exception as e:
            raise ParseError(f"Failed to parse Excel file: {str(e)}")

        try:
            sheet_names = list(wb.sheetnames)
            if not sheet_names:
                raise ParseError("Workbook has no sheets")
            selected = sheet if sheet in sheet_names else sheet_names[0]

            records = [
                [cell_to_str(value) for value in row]
                for row in wb[selected].iter_rows(values_only=True)
            ]
        finally:
            wb.close()

        # drop leading blank rows so the first populated row is the header
        while records and all(not v.strip() for v in records[0]):
            records.pop(0)

        if not records:
            return ParsedFile(
                file_name=file_name,
                file_size=len(content),
                headers=[],
                rows=[],
                sheet_names=sheet_names,
                selected_sheet=selected,
            )

        raw_headers = records[0]
        # trailing empty header cells are formatting leftovers
        while raw_headers and not raw_headers[-1].strip():
            raw_headers = raw_headers[:-1]
        raw_headers = [h if h.strip() else f"Column {i + 1}" for i, h in enumerate(raw_headers)]

        headers, rows = self.build_rows(raw_headers, [r[: len(raw_headers)] for r in records[1:]])
        return ParsedFile(
            file_name=file_name,
            file_size=len(content),
            headers=headers,
            rows=rows,
            sheet_names=sheet_names,
            selected_sheet=selected,
        )
