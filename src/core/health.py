"""
Health index calculation.

Reduces a set of vulnerability records to a 0-100 score and a status.

Algorithm:
    1. Count records by severity (records with severity "None" are ignored)
    2. Penalty = Critical x 20 + Important x 10 + Moderate x 5 + Low x 1
    3. Score = max(0, 100 - penalty)
    4. Status = Critical if any Critical, At Risk if any Important, else Healthy

Score and status are derived independently from the same counts: an image
with many Important CVEs can score 0 while its status is only At Risk.
"""

from collections import Counter
from datetime import datetime
from typing import Iterable, Optional

from constants import MAX_HEALTH_SCORE, SEVERITY_PENALTIES
from core.models import (
    HealthSnapshot,
    HealthStatus,
    Severity,
    SeverityCounts,
    VulnerabilityRecord,
)


def count_severities(records: Iterable[VulnerabilityRecord]) -> SeverityCounts:
    """Build the severity histogram for a record set."""
    counts = Counter(record.severity for record in records)
    return SeverityCounts(
        critical=counts[Severity.CRITICAL],
        important=counts[Severity.IMPORTANT],
        moderate=counts[Severity.MODERATE],
        low=counts[Severity.LOW],
    )


def calculate_penalty(counts: SeverityCounts) -> int:
    """Total penalty points for a histogram."""
    return (
        counts.critical * SEVERITY_PENALTIES[Severity.CRITICAL.value]
        + counts.important * SEVERITY_PENALTIES[Severity.IMPORTANT.value]
        + counts.moderate * SEVERITY_PENALTIES[Severity.MODERATE.value]
        + counts.low * SEVERITY_PENALTIES[Severity.LOW.value]
    )


def calculate_score(counts: SeverityCounts) -> int:
    """Health score in [0, 100]."""
    return max(0, MAX_HEALTH_SCORE - calculate_penalty(counts))


def determine_status(counts: SeverityCounts) -> HealthStatus:
    """Health status from the presence of Critical/Important CVEs."""
    if counts.critical > 0:
        return HealthStatus.CRITICAL
    if counts.important > 0:
        return HealthStatus.AT_RISK
    return HealthStatus.HEALTHY


def snapshot_from_counts(
    counts: SeverityCounts,
    computed_at: Optional[datetime] = None,
) -> HealthSnapshot:
    """Build a snapshot whose score and status are derived from counts."""
    kwargs = {"computed_at": computed_at} if computed_at else {}
    return HealthSnapshot(
        score=calculate_score(counts),
        status=determine_status(counts),
        severity_counts=counts,
        **kwargs,
    )


def unknown_snapshot(computed_at: Optional[datetime] = None) -> HealthSnapshot:
    """Snapshot recorded when no build could be resolved."""
    kwargs = {"computed_at": computed_at} if computed_at else {}
    return HealthSnapshot(
        score=0,
        status=HealthStatus.UNKNOWN,
        severity_counts=SeverityCounts(),
        **kwargs,
    )


class HealthScorer:
    """Pure scorer: vulnerability records in, health snapshot out."""

    def score(
        self,
        records: Iterable[VulnerabilityRecord],
        computed_at: Optional[datetime] = None,
    ) -> HealthSnapshot:
        """
        Score a record set.

        Args:
            records: Vulnerability records of one resolved build
            computed_at: Timestamp to stamp on the snapshot (default: now, UTC)

        Returns:
            HealthSnapshot with score, status and severity histogram
        """
        return snapshot_from_counts(count_severities(records), computed_at)


def critical_and_important_cves(records: Iterable[VulnerabilityRecord]) -> list[str]:
    """CVE ids of records that contribute to Critical/Important counts."""
    return [
        record.cve_id
        for record in records
        if record.severity in (Severity.CRITICAL, Severity.IMPORTANT)
    ]
