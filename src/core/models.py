"""
Domain models for container image health monitoring.

This module defines the core data structures used throughout the pipeline.
Models that describe catalog facts or computed results are immutable
(frozen dataclasses) to prevent accidental mutation; only the RunSummary,
which the run coordinator accumulates into, is mutable.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from constants import LATEST_STREAM


class Severity(str, Enum):
    """CVE severity levels as reported by the Red Hat catalog."""

    CRITICAL = "Critical"
    IMPORTANT = "Important"
    MODERATE = "Moderate"
    LOW = "Low"
    NONE = "None"

    @classmethod
    def ordered_levels(cls) -> list[str]:
        """Return severity levels in display order."""
        return [level.value for level in cls]

    @classmethod
    def from_catalog(cls, value: Optional[str]) -> "Severity":
        """
        Map a catalog severity string to a Severity.

        Unrecognized or missing values map to NONE.
        """
        if not value:
            return cls.NONE
        for level in cls:
            if level.value.lower() == value.strip().lower():
                return level
        return cls.NONE


class HealthStatus(str, Enum):
    """Health classification of an image."""

    HEALTHY = "Healthy"
    AT_RISK = "At Risk"
    CRITICAL = "Critical"
    UNKNOWN = "Unknown"

    @classmethod
    def from_value(cls, value: Optional[str]) -> "HealthStatus":
        """Parse a stored status string, falling back to UNKNOWN."""
        for status in cls:
            if status.value == value:
                return status
        return cls.UNKNOWN


class DeliveryStatus(str, Enum):
    """Outcome of offering one notification to the notification service."""

    SUCCESS = "Success"
    FAILED = "Failed"
    SKIPPED = "Skipped"


class RunStatus(str, Enum):
    """Overall status of a monitoring run."""

    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass(frozen=True)
class ImageCoordinate:
    """
    Identity of one monitored unit.

    Attributes:
        registry: Registry hostname (e.g., "registry.access.redhat.com")
        repository: Repository path (e.g., "ubi8/ubi")
        architecture: CPU architecture (amd64, arm64, ppc64le, s390x)
        stream: "latest" or a dotted version prefix such as "4.9"
    """

    registry: str
    repository: str
    architecture: str
    stream: str = LATEST_STREAM

    @property
    def is_latest_stream(self) -> bool:
        return self.stream == LATEST_STREAM

    @property
    def image_path(self) -> str:
        """Registry-qualified repository path."""
        return f"{self.registry}/{self.repository}"

    def __str__(self) -> str:
        return f"{self.image_path} ({self.architecture}, {self.stream})"


@dataclass(frozen=True)
class RepositoryRef:
    """Repository as known to the catalog."""

    id: str
    registry: str
    repository: str


@dataclass(frozen=True)
class CatalogImage:
    """
    One architecture-specific build listed by the catalog.

    Attributes:
        build_id: Catalog internal identifier (used for vulnerability lookups)
        content_digest: Content digest (sha256), for reference only
        architecture: Build architecture
        tags: Tag names attached to this build
        created_at: Creation time reported by the catalog, if any
    """

    build_id: str
    content_digest: Optional[str]
    architecture: str
    tags: tuple[str, ...] = ()
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ImagePage:
    """One page of an image listing."""

    images: tuple[CatalogImage, ...]
    page: int
    page_size: int
    total: int

    @property
    def has_more(self) -> bool:
        """Whether another page exists after this one."""
        return (self.page + 1) * self.page_size < self.total


@dataclass(frozen=True)
class ResolvedBuild:
    """
    The build chosen as "latest" for a coordinate.

    build_id is the catalog's stable identifier, NOT a content digest, and
    is the only identifier valid for vulnerability lookups.
    """

    build_id: str
    display_version: str
    architecture: str
    content_digest: Optional[str] = None


@dataclass(frozen=True)
class BuildNotFound:
    """No tag survived stream and architecture filtering."""

    coordinate: ImageCoordinate
    reason: str


Resolution = Union[ResolvedBuild, BuildNotFound]


@dataclass(frozen=True)
class VulnerabilityRecord:
    """
    A CVE affecting one resolved build.

    Attributes:
        cve_id: CVE identifier (e.g., "CVE-2024-1234")
        severity: Catalog severity
        advisory_id: Red Hat advisory (e.g., "RHSA-2024:1234"), may be empty
        affected_packages: Package names; the catalog often omits these
        published_date: Public disclosure date as reported, if any
        description: Free text, used for placeholder records
    """

    cve_id: str
    severity: Severity
    advisory_id: str = ""
    affected_packages: tuple[str, ...] = ()
    published_date: Optional[str] = None
    description: str = ""


@dataclass(frozen=True)
class SeverityCounts:
    """Severity histogram of a record set ("None" is not counted)."""

    critical: int = 0
    important: int = 0
    moderate: int = 0
    low: int = 0

    @property
    def total(self) -> int:
        return self.critical + self.important + self.moderate + self.low

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary for serialization."""
        return {
            "critical": self.critical,
            "important": self.important,
            "moderate": self.moderate,
            "low": self.low,
        }

    @classmethod
    def from_dict(cls, data: dict[str, int]) -> "SeverityCounts":
        """Create from dictionary."""
        return cls(
            critical=data.get("critical", 0),
            important=data.get("important", 0),
            moderate=data.get("moderate", 0),
            low=data.get("low", 0),
        )


@dataclass(frozen=True)
class HealthSnapshot:
    """
    Health of one coordinate at one point in time.

    Build instances through core.health so that score and status are always
    derived from severity_counts.
    """

    score: int
    status: HealthStatus
    severity_counts: SeverityCounts
    computed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class PreviousStatus:
    """Last persisted health for a coordinate."""

    status: HealthStatus
    score: int


@dataclass(frozen=True)
class Transition:
    """Before/after status pair for one coordinate."""

    previous_status: HealthStatus
    current_status: HealthStatus
    changed: bool
    current_score: int
    previous_score: Optional[int] = None

    @property
    def is_first_observation(self) -> bool:
        return self.previous_score is None and self.previous_status == HealthStatus.UNKNOWN

    def describe(self) -> str:
        """Human-readable description, stored with the historical row."""
        if self.is_first_observation:
            return f"First observation ({self.current_status.value})"
        if not self.changed:
            return "No change"
        return f"{self.previous_status.value} → {self.current_status.value}"


@dataclass(frozen=True)
class UnitResult:
    """Successful outcome of running the pipeline for one coordinate."""

    coordinate: ImageCoordinate
    build: ResolvedBuild
    records: tuple[VulnerabilityRecord, ...]
    snapshot: HealthSnapshot
    transition: Transition

    @property
    def cve_ids(self) -> list[str]:
        return [record.cve_id for record in self.records]

    @property
    def succeeded(self) -> bool:
        return True


@dataclass(frozen=True)
class UnitFailure:
    """
    Failed outcome of running the pipeline for one coordinate.

    Lookup misses additionally carry a placeholder snapshot and record so
    that storage receives a row for every configured coordinate.
    """

    coordinate: ImageCoordinate
    error_type: str
    error_message: str
    snapshot: Optional[HealthSnapshot] = None
    placeholder: Optional[VulnerabilityRecord] = None

    @property
    def is_lookup_miss(self) -> bool:
        return self.placeholder is not None

    @property
    def succeeded(self) -> bool:
        return False


UnitOutcome = Union[UnitResult, UnitFailure]


@dataclass(frozen=True)
class TransitionEvent:
    """Notification intent for one changed transition."""

    run_id: str
    coordinate: ImageCoordinate
    image_version: str
    previous_status: HealthStatus
    current_status: HealthStatus
    previous_score: Optional[int]
    current_score: int
    critical_count: int
    important_count: int
    affected_cves: tuple[str, ...] = ()
    affected_packages: tuple[str, ...] = ()
    triggered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of offering an event to the notification service."""

    status: DeliveryStatus
    channels: tuple[str, ...] = ()
    error_message: Optional[str] = None


@dataclass(frozen=True)
class RunError:
    """One error recorded during a run."""

    error_type: str
    error_message: str
    coordinate: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, str]:
        return {
            "coordinate": self.coordinate or "",
            "error_type": self.error_type,
            "error_message": self.error_message,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class RunSummary:
    """
    Aggregate outcome of one monitoring run.

    Mutated only by the run coordinator while the run is in progress.
    """

    run_id: str
    started_at: datetime
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    total_cves: int = 0
    health_changes: int = 0
    notifications_sent: int = 0
    notifications_failed: int = 0
    notifications_skipped: int = 0
    errors: list[RunError] = field(default_factory=list)
    duration_ms: int = 0
    status: RunStatus = RunStatus.RUNNING

    def record_error(
        self,
        error_type: str,
        error_message: str,
        coordinate: Optional[ImageCoordinate] = None,
    ) -> None:
        """Append an error entry."""
        self.errors.append(
            RunError(
                error_type=error_type,
                error_message=error_message,
                coordinate=str(coordinate) if coordinate else None,
            )
        )

    def finalize_status(self) -> RunStatus:
        """Derive the overall status from unit counters."""
        if self.failed == 0 and self.processed > 0:
            self.status = RunStatus.COMPLETED
        elif self.succeeded > 0:
            self.status = RunStatus.PARTIAL
        else:
            self.status = RunStatus.FAILED
        return self.status
