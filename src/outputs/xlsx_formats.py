"""
XLSX format definitions and factory.

Centralizes the cell formats used by the workbook exporter, including the
colour coding of health statuses and CVE severities.
"""

from typing import Optional

import xlsxwriter

from core.models import HealthStatus, Severity


class OutputFormatter:
    """Factory for creating consistent XLSX cell formats."""

    # Base format properties shared by all formats
    BASE_FORMAT = {
        "border": 1,
        "font_name": "Arial",
        "font_size": 10,
        "align": "left",
        "valign": "vcenter",
    }

    COLORS = {
        "header": "#4285f4",
        "green": "#D9EAD3",
        "orange": "#FCE5CD",
        "red": "#FFE5E5",
        "grey": "#F3F3F3",
        "yellow": "#FFF2CC",
    }

    STATUS_FORMATS = {
        HealthStatus.HEALTHY.value: "body_green",
        HealthStatus.AT_RISK.value: "body_orange",
        HealthStatus.CRITICAL.value: "body_red",
        HealthStatus.UNKNOWN.value: "body_grey",
    }

    SEVERITY_FORMATS = {
        Severity.CRITICAL.value: "body_red",
        Severity.IMPORTANT.value: "body_orange",
        Severity.MODERATE.value: "body_yellow",
    }

    def __init__(self, workbook: xlsxwriter.Workbook):
        """
        Initialize formatter with workbook.

        Args:
            workbook: XlsxWriter workbook instance
        """
        self.workbook = workbook
        self.formats = self._create_all_formats()

    def _create_format(
        self,
        bg_color: Optional[str] = None,
        font_color: str = "black",
        bold: bool = False,
    ) -> xlsxwriter.format.Format:
        """Create a format with base properties plus overrides."""
        format_dict = self.BASE_FORMAT.copy()

        if bg_color:
            format_dict["bg_color"] = bg_color
        if font_color != "black":
            format_dict["font_color"] = font_color
        if bold:
            format_dict["bold"] = True

        return self.workbook.add_format(format_dict)

    def _create_all_formats(self) -> dict:
        return {
            "header": self._create_format(
                bg_color=self.COLORS["header"],
                font_color="white",
                bold=True,
            ),
            "body_white": self._create_format(),
            "body_green": self._create_format(bg_color=self.COLORS["green"]),
            "body_orange": self._create_format(bg_color=self.COLORS["orange"]),
            "body_red": self._create_format(bg_color=self.COLORS["red"]),
            "body_grey": self._create_format(bg_color=self.COLORS["grey"]),
            "body_yellow": self._create_format(bg_color=self.COLORS["yellow"]),
        }

    def get(self, format_name: str) -> xlsxwriter.format.Format:
        """
        Get a format by name.

        Raises:
            KeyError: If format name doesn't exist
        """
        return self.formats[format_name]

    def for_status(self, status: Optional[str]) -> xlsxwriter.format.Format:
        """Format for a health status cell."""
        return self.get(self.STATUS_FORMATS.get(status, "body_white"))

    def for_severity(self, severity: Optional[str]) -> xlsxwriter.format.Format:
        """Format for a severity cell."""
        return self.get(self.SEVERITY_FORMATS.get(severity, "body_white"))
