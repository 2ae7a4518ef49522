"""
Pytest fixtures and configuration for Vigil tests.

Provides shared fixtures and test utilities across the test suite.
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from core.models import (
    CatalogImage,
    HealthStatus,
    ImageCoordinate,
    ImagePage,
    RepositoryRef,
    Severity,
    TransitionEvent,
    VulnerabilityRecord,
)


def make_record(cve_id: str, severity: Severity, packages=()) -> VulnerabilityRecord:
    """Build a vulnerability record with defaults."""
    return VulnerabilityRecord(
        cve_id=cve_id,
        severity=severity,
        advisory_id=f"RHSA-{cve_id[4:]}",
        affected_packages=tuple(packages),
    )


def make_image(build_id: str, tags, architecture="amd64", created_at=None) -> CatalogImage:
    """Build a catalog image with defaults."""
    return CatalogImage(
        build_id=build_id,
        content_digest=f"sha256:{build_id}",
        architecture=architecture,
        tags=tuple(tags),
        created_at=created_at,
    )


def graphql_response(data: dict, status_code: int = 200) -> MagicMock:
    """Mock requests response carrying a GraphQL 'data' object."""
    response = MagicMock()
    response.status_code = status_code
    response.text = ""
    response.json.return_value = {"data": data}
    return response


def error_response(status_code: int, text: str = "error") -> MagicMock:
    """Mock requests response with a non-200 status."""
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    return response


@pytest.fixture
def coordinate():
    """Sample coordinate for the latest stream."""
    return ImageCoordinate(
        registry="registry.access.redhat.com",
        repository="ubi8/ubi",
        architecture="amd64",
    )


@pytest.fixture
def stream_coordinate():
    """Sample coordinate pinned to the 4.9 stream."""
    return ImageCoordinate(
        registry="registry.access.redhat.com",
        repository="openshift4/ose-cli",
        architecture="amd64",
        stream="4.9",
    )


@pytest.fixture
def mixed_records():
    """Records covering every severity."""
    return [
        make_record("CVE-2024-0001", Severity.CRITICAL, ["openssl"]),
        make_record("CVE-2024-0002", Severity.IMPORTANT, ["glibc", "openssl"]),
        make_record("CVE-2024-0003", Severity.MODERATE, ["zlib"]),
        make_record("CVE-2024-0004", Severity.LOW),
        make_record("CVE-2024-0005", Severity.NONE),
    ]


@pytest.fixture
def mock_catalog():
    """Catalog client mock that resolves one build with no CVEs."""
    catalog = MagicMock()
    catalog.find_repository.return_value = RepositoryRef(
        id="repo-1",
        registry="registry.access.redhat.com",
        repository="ubi8/ubi",
    )
    catalog.list_images.return_value = ImagePage(
        images=(
            make_image(
                "build-1",
                ["8.10-1028", "latest"],
                created_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
            ),
        ),
        page=0,
        page_size=500,
        total=1,
    )
    catalog.list_vulnerabilities.return_value = []
    return catalog


@pytest.fixture
def sqlite_store(tmp_path):
    """Empty SQLite store in a temporary directory."""
    from storage.sqlite_store import SQLiteStore

    return SQLiteStore(tmp_path / "vigil.db")


@pytest.fixture
def transition_event(coordinate):
    """Healthy to Critical transition with two severe CVEs."""
    return TransitionEvent(
        run_id="run-1",
        coordinate=coordinate,
        image_version="8.10-1028",
        previous_status=HealthStatus.HEALTHY,
        current_status=HealthStatus.CRITICAL,
        previous_score=100,
        current_score=70,
        critical_count=1,
        important_count=1,
        affected_cves=("CVE-2024-0001", "CVE-2024-0002"),
        affected_packages=("openssl", "glibc"),
    )
