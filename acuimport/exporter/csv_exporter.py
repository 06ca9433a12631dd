"""CSV export of import row logs."""
import csv
import io
from pathlib import Path
from typing import List

from acuimport.store.models import ImportRowLog, RowOperation, RowStatus

COLUMNS = ["Row", "Key", "Status", "Operation", "Error"]


class CsvLogExporter:
    """Export the row logs of an import session to CSV."""

    def render(self, logs: List[ImportRowLog]) -> str:
        """CSV text, one line per row log in row order."""
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(COLUMNS)

        for log in sorted(logs, key=lambda entry: entry.row_number):
            writer.writerow(
                [
                    log.row_number,
                    log.key_value,
                    RowStatus(log.status).value,
                    RowOperation(log.operation).value if log.operation else "",
                    log.error_message or "",
                ]
            )

        return buffer.getvalue()

    def export(self, output_file: Path, logs: List[ImportRowLog]) -> None:
        """Export to CSV file."""
        output_file = Path(output_file)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        with open(output_file, "w", encoding="utf-8", newline="") as f:
            f.write(self.render(logs))
