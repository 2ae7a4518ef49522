"""
Vigil - Container Image Health Monitor

Tracks the vulnerability posture of container images published in the
Red Hat Container Catalog and raises alerts when an image's health
status changes.
"""

__version__ = "1.0.0"
__author__ = "Vigil Maintainers"

from core.models import (
    HealthSnapshot,
    ImageCoordinate,
    RunSummary,
    VulnerabilityRecord,
)

__all__ = [
    "HealthSnapshot",
    "ImageCoordinate",
    "RunSummary",
    "VulnerabilityRecord",
]
