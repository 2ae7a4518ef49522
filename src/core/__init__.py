"""Core domain models and the vulnerability resolution pipeline."""

from core.models import (
    HealthSnapshot,
    HealthStatus,
    ImageCoordinate,
    RunSummary,
    Severity,
    Transition,
    VulnerabilityRecord,
)

__all__ = [
    "HealthSnapshot",
    "HealthStatus",
    "ImageCoordinate",
    "RunSummary",
    "Severity",
    "Transition",
    "VulnerabilityRecord",
]
