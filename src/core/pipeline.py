"""
Per-coordinate pipeline.

Drives one monitored unit end to end: repository lookup, latest-build
resolution, vulnerability fetch, scoring and change detection. Every
failure is converted into a UnitFailure at this boundary so that one
coordinate can never abort its siblings.
"""

import logging
from typing import Optional

import requests

from constants import DEFAULT_IMAGES_PAGE_SIZE, DEFAULT_VULNERABILITIES_PAGE_SIZE
from core.change_detector import ChangeDetector
from core.exceptions import LookupMiss, VigilException
from core.health import HealthScorer, unknown_snapshot
from core.models import (
    BuildNotFound,
    CatalogImage,
    ImageCoordinate,
    Severity,
    UnitFailure,
    UnitOutcome,
    UnitResult,
    VulnerabilityRecord,
)
from core.version_resolver import VersionResolver
from integrations.catalog_client import CatalogClient
from storage.base import MonitorStore

logger = logging.getLogger(__name__)

PLACEHOLDER_CVE_ID = "N/A"


def lookup_miss_failure(coordinate: ImageCoordinate, reason: str) -> UnitFailure:
    """
    Build the failure recorded when no repository or build could be found.

    Carries an Unknown snapshot and a single placeholder record so storage
    still receives a row for the coordinate.
    """
    return UnitFailure(
        coordinate=coordinate,
        error_type=LookupMiss.__name__,
        error_message=reason,
        snapshot=unknown_snapshot(),
        placeholder=VulnerabilityRecord(
            cve_id=PLACEHOLDER_CVE_ID,
            severity=Severity.NONE,
            description=f"No build found: {reason}",
        ),
    )


class PipelineOrchestrator:
    """Runs the resolution pipeline for a single coordinate."""

    def __init__(
        self,
        catalog: CatalogClient,
        store: Optional[MonitorStore] = None,
        resolver: Optional[VersionResolver] = None,
        scorer: Optional[HealthScorer] = None,
        detector: Optional[ChangeDetector] = None,
        images_page_size: int = DEFAULT_IMAGES_PAGE_SIZE,
        vulnerabilities_page_size: int = DEFAULT_VULNERABILITIES_PAGE_SIZE,
    ):
        """
        Initialize pipeline.

        Args:
            catalog: Catalog client
            store: Store used to read the previous status (None: always first observation)
            resolver: Latest-build resolver
            scorer: Health scorer
            detector: Change detector
            images_page_size: Page size for image listings
            vulnerabilities_page_size: Page size for vulnerability listings
        """
        self.catalog = catalog
        self.store = store
        self.resolver = resolver or VersionResolver()
        self.scorer = scorer or HealthScorer()
        self.detector = detector or ChangeDetector()
        self.images_page_size = images_page_size
        self.vulnerabilities_page_size = vulnerabilities_page_size

    def run_unit(self, coordinate: ImageCoordinate) -> UnitOutcome:
        """
        Run the pipeline for one coordinate.

        Args:
            coordinate: Monitored unit

        Returns:
            UnitResult on success, UnitFailure otherwise (never raises)
        """
        logger.info(f"Processing {coordinate}")

        try:
            return self._run(coordinate)
        except LookupMiss as e:
            logger.warning(f"Lookup miss for {coordinate}: {e.reason}")
            return lookup_miss_failure(coordinate, e.reason)
        except VigilException as e:
            logger.error(f"Failed to process {coordinate}: {e}")
            return UnitFailure(coordinate, type(e).__name__, str(e))
        except requests.RequestException as e:
            logger.error(f"Network error while processing {coordinate}: {e}")
            return UnitFailure(coordinate, type(e).__name__, str(e))
        except Exception as e:
            logger.error(f"Unexpected error while processing {coordinate}: {e}", exc_info=True)
            return UnitFailure(coordinate, type(e).__name__, str(e))

    def _run(self, coordinate: ImageCoordinate) -> UnitOutcome:
        self.catalog.find_repository(coordinate.repository)

        candidates = self._list_all_images(coordinate)
        resolution = self.resolver.resolve_latest(coordinate, candidates)

        if isinstance(resolution, BuildNotFound):
            logger.warning(f"Lookup miss for {coordinate}: {resolution.reason}")
            return lookup_miss_failure(coordinate, resolution.reason)

        logger.info(f"{coordinate}: latest build is {resolution.display_version}")

        records = self.catalog.list_vulnerabilities(
            resolution.build_id,
            page_size=self.vulnerabilities_page_size,
        )
        snapshot = self.scorer.score(records)
        logger.info(
            f"{coordinate}: {len(records)} CVEs, health {snapshot.score} ({snapshot.status.value})"
        )

        previous = self.store.read_previous_status(coordinate) if self.store else None
        transition = self.detector.detect(coordinate, snapshot, previous)

        return UnitResult(
            coordinate=coordinate,
            build=resolution,
            records=tuple(records),
            snapshot=snapshot,
            transition=transition,
        )

    def _list_all_images(self, coordinate: ImageCoordinate) -> list[CatalogImage]:
        """Collect every image page for a coordinate."""
        images: list[CatalogImage] = []
        page_number = 0

        while True:
            page = self.catalog.list_images(
                coordinate.registry,
                coordinate.repository,
                coordinate.architecture,
                page=page_number,
                page_size=self.images_page_size,
            )
            images.extend(page.images)
            if not page.images or not page.has_more:
                break
            page_number += 1

        logger.debug(f"{coordinate}: {len(images)} candidate builds")
        return images
