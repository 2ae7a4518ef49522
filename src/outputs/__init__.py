"""Exporters for stored monitoring data."""

from outputs.base import StoreExporter
from outputs.xlsx_generator import WorkbookExporter

__all__ = [
    "StoreExporter",
    "WorkbookExporter",
]
