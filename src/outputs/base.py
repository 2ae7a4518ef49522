"""
Base exporter interface.

Defines the contract that all store exporters must implement.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from storage.base import MonitorStore


class StoreExporter(ABC):
    """
    Abstract base class for exporters of the monitoring store.
    """

    @abstractmethod
    def generate(self, store: MonitorStore, output_path: Path) -> Path:
        """
        Export the store's tables.

        Args:
            store: Store to read from
            output_path: Where to write the output file

        Returns:
            Path of the written file
        """
        pass

    @abstractmethod
    def supports_format(self) -> str:
        """
        Return the format this exporter writes.

        Returns:
            Format identifier (e.g., "xlsx")
        """
        pass
