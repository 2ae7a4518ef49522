"""
XLSX export of the monitoring store.

Writes one worksheet per stored table (configuration, current CVE data,
history and run logs), with health status and severity cells colour
coded.
"""

import logging
from pathlib import Path

import xlsxwriter

from outputs.base import StoreExporter
from outputs.xlsx_formats import OutputFormatter
from storage.base import MonitorStore

logger = logging.getLogger(__name__)

SHEETS = (
    ("config", "Config"),
    ("cve_data", "CVE Data"),
    ("historical", "Historical"),
    ("run_logs", "Logs"),
)

STATUS_COLUMNS = {"health_status"}
SEVERITY_COLUMNS = {"severity"}


class WorkbookExporter(StoreExporter):
    """Exports every store table to an Excel workbook."""

    def supports_format(self) -> str:
        """Return format identifier."""
        return "xlsx"

    def generate(self, store: MonitorStore, output_path: Path) -> Path:
        """
        Export the store to XLSX.

        Args:
            store: Store to read tables from
            output_path: Output file path

        Returns:
            Path of the written workbook
        """
        output_path = Path(output_path)
        if output_path.parent != Path("."):
            output_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Exporting monitoring data: {output_path}")

        workbook = xlsxwriter.Workbook(str(output_path))
        try:
            formatter = OutputFormatter(workbook)
            for table, title in SHEETS:
                columns, rows = store.read_table(table)
                self._write_sheet(workbook.add_worksheet(title), formatter, columns, rows)
                logger.debug(f"Wrote {len(rows)} rows to sheet '{title}'")
        finally:
            workbook.close()

        logger.info(f"Export complete: {output_path}")
        return output_path

    @staticmethod
    def _write_sheet(
        worksheet: xlsxwriter.worksheet.Worksheet,
        formatter: OutputFormatter,
        columns: list[str],
        rows: list[tuple],
    ) -> None:
        """Write a header row and data rows, colouring status and severity cells."""
        worksheet.write_row(0, 0, columns, formatter.get("header"))
        worksheet.freeze_panes(1, 0)

        for row_index, row in enumerate(rows, 1):
            for col_index, (column, value) in enumerate(zip(columns, row)):
                if column in STATUS_COLUMNS:
                    cell_format = formatter.for_status(value)
                elif column in SEVERITY_COLUMNS:
                    cell_format = formatter.for_severity(value)
                else:
                    cell_format = formatter.get("body_white")
                worksheet.write(row_index, col_index, value, cell_format)

        if columns:
            worksheet.autofilter(0, 0, max(len(rows), 1), len(columns) - 1)
        worksheet.autofit()
