"""
Base store interface.

Defines the read/write contract the run coordinator consumes from a
persistence backend.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from core.config import ImageEntry
from core.models import (
    HealthSnapshot,
    ImageCoordinate,
    PreviousStatus,
    RunSummary,
    VulnerabilityRecord,
)


class MonitorStore(ABC):
    """
    Abstract base class for monitoring stores.

    Implementations raise PersistenceException for any backend failure.
    """

    @abstractmethod
    def sync_configured_images(self, entries: Iterable[ImageEntry]) -> int:
        """
        Replace the stored image configuration with the given entries.

        Returns:
            Number of entries stored
        """
        pass

    @abstractmethod
    def read_configured_coordinates(self) -> list[ImageCoordinate]:
        """Return coordinates of all enabled configured images."""
        pass

    @abstractmethod
    def read_previous_status(self, coordinate: ImageCoordinate) -> Optional[PreviousStatus]:
        """Return the most recently observed status, or None if never observed.

        Lookup-miss placeholder rows are not observations and are skipped.
        """
        pass

    @abstractmethod
    def write_current_vulnerabilities(
        self,
        coordinate: ImageCoordinate,
        resolved_version: str,
        records: list[VulnerabilityRecord],
        snapshot: HealthSnapshot,
    ) -> None:
        """
        Replace the current vulnerability rows of a coordinate.

        Args:
            coordinate: Monitored unit
            resolved_version: Display version of the resolved build
            records: Complete record set for the build
            snapshot: Health computed from the records
        """
        pass

    @abstractmethod
    def append_historical_snapshot(
        self,
        coordinate: ImageCoordinate,
        snapshot: HealthSnapshot,
        transition_description: str,
        version: str = "",
    ) -> None:
        """Append one history row for a coordinate."""
        pass

    @abstractmethod
    def append_run_log(self, summary: RunSummary) -> None:
        """Append one row describing a finished run."""
        pass

    @abstractmethod
    def read_table(self, name: str) -> tuple[list[str], list[tuple]]:
        """
        Read a whole table for export.

        Returns:
            (column names, rows)
        """
        pass
