"""Tests for the SQLite monitoring store."""

import json
import sqlite3
import pytest
from datetime import datetime, timezone
from unittest.mock import patch

from core.config import ImageEntry
from core.exceptions import PersistenceException
from core.health import HealthScorer, snapshot_from_counts, unknown_snapshot
from core.models import (
    HealthStatus,
    RunStatus,
    RunSummary,
    Severity,
    SeverityCounts,
)
from storage.sqlite_store import SQLiteStore, advisory_url
from conftest import make_record


def _rows_as_dicts(store, table):
    columns, rows = store.read_table(table)
    return [dict(zip(columns, row)) for row in rows]


class TestConfiguredImages:
    """Tests for configuration sync and reads."""

    def test_sync_and_read(self, sqlite_store):
        """Test that entries expand into coordinates."""
        sqlite_store.sync_configured_images([
            ImageEntry(repository="ubi8/ubi", architectures=("amd64", "arm64")),
            ImageEntry(repository="openshift4/ose-cli", streams=("4.9", "4.10")),
        ])

        coordinates = sqlite_store.read_configured_coordinates()

        assert [(c.repository, c.architecture, c.stream) for c in coordinates] == [
            ("ubi8/ubi", "amd64", "latest"),
            ("ubi8/ubi", "arm64", "latest"),
            ("openshift4/ose-cli", "amd64", "4.9"),
            ("openshift4/ose-cli", "amd64", "4.10"),
        ]

    def test_disabled_entries_excluded(self, sqlite_store):
        """Test that disabled entries are stored but not monitored."""
        sqlite_store.sync_configured_images([
            ImageEntry(repository="ubi8/ubi"),
            ImageEntry(repository="ubi9/ubi", enabled=False),
        ])

        coordinates = sqlite_store.read_configured_coordinates()

        assert [c.repository for c in coordinates] == ["ubi8/ubi"]
        assert len(_rows_as_dicts(sqlite_store, "config")) == 2

    def test_resync_updates_and_disables(self, sqlite_store):
        """Test that a resync updates existing rows and disables removed ones."""
        sqlite_store.sync_configured_images([
            ImageEntry(repository="ubi8/ubi"),
            ImageEntry(repository="ubi9/ubi"),
        ])
        sqlite_store.sync_configured_images([
            ImageEntry(repository="ubi8/ubi", architectures=("s390x",)),
        ])

        rows = _rows_as_dicts(sqlite_store, "config")
        coordinates = sqlite_store.read_configured_coordinates()

        assert len(rows) == 2
        assert [(c.repository, c.architecture) for c in coordinates] == [("ubi8/ubi", "s390x")]


class TestPreviousStatus:
    """Tests for read_previous_status."""

    def test_none_when_never_observed(self, sqlite_store, coordinate):
        """Test that an unseen coordinate has no previous status."""
        assert sqlite_store.read_previous_status(coordinate) is None

    def test_latest_history_row_wins(self, sqlite_store, coordinate):
        """Test that the most recent snapshot is returned."""
        sqlite_store.append_historical_snapshot(
            coordinate, snapshot_from_counts(SeverityCounts()), "First observation (Healthy)"
        )
        sqlite_store.append_historical_snapshot(
            coordinate, snapshot_from_counts(SeverityCounts(critical=1)), "Healthy → Critical"
        )

        previous = sqlite_store.read_previous_status(coordinate)

        assert previous.status == HealthStatus.CRITICAL
        assert previous.score == 80

    def test_other_streams_are_separate(self, sqlite_store, coordinate, stream_coordinate):
        """Test that history is keyed by the full coordinate."""
        sqlite_store.append_historical_snapshot(
            stream_coordinate, snapshot_from_counts(SeverityCounts()), "First observation (Healthy)"
        )

        assert sqlite_store.read_previous_status(coordinate) is None

    def test_placeholder_rows_are_skipped(self, sqlite_store, coordinate):
        """Test that a lookup-miss row does not replace the last real status."""
        sqlite_store.append_historical_snapshot(
            coordinate, snapshot_from_counts(SeverityCounts(critical=1)), "First observation (Critical)"
        )
        sqlite_store.append_historical_snapshot(
            coordinate, unknown_snapshot(), "Lookup miss: repository not found"
        )

        previous = sqlite_store.read_previous_status(coordinate)

        assert previous.status == HealthStatus.CRITICAL
        assert previous.score == 80

    def test_only_placeholders_means_never_observed(self, sqlite_store, coordinate):
        """Test that a coordinate seen only as a lookup miss has no previous status."""
        sqlite_store.append_historical_snapshot(
            coordinate, unknown_snapshot(), "Lookup miss: repository not found"
        )

        assert sqlite_store.read_previous_status(coordinate) is None


class TestCurrentVulnerabilities:
    """Tests for write_current_vulnerabilities."""

    def test_rewrite_replaces_rows(self, sqlite_store, coordinate, mixed_records):
        """Test that only the latest CVE set is kept for a coordinate."""
        snapshot = HealthScorer().score(mixed_records)
        sqlite_store.write_current_vulnerabilities(coordinate, "8.10-1", mixed_records, snapshot)

        newer = [make_record("CVE-2024-9000", Severity.LOW, ["bash"])]
        sqlite_store.write_current_vulnerabilities(
            coordinate, "8.10-2", newer, HealthScorer().score(newer)
        )

        rows = _rows_as_dicts(sqlite_store, "cve_data")
        assert len(rows) == 1
        assert rows[0]["cve_id"] == "CVE-2024-9000"
        assert rows[0]["image_version"] == "8.10-2"
        assert rows[0]["affected_packages"] == "bash"
        assert rows[0]["health_score"] == 99
        assert rows[0]["advisory_url"].endswith("CVE-2024-9000")

    def test_rows_carry_snapshot(self, sqlite_store, coordinate, mixed_records):
        """Test that every row carries the coordinate's score and status."""
        snapshot = HealthScorer().score(mixed_records)
        sqlite_store.write_current_vulnerabilities(coordinate, "8.10-1", mixed_records, snapshot)

        rows = _rows_as_dicts(sqlite_store, "cve_data")
        assert len(rows) == 5
        assert {row["health_status"] for row in rows} == {"Critical"}
        assert {row["health_score"] for row in rows} == {64}


class TestRunLog:
    """Tests for append_run_log."""

    def test_errors_serialized(self, sqlite_store, coordinate):
        """Test that run errors are stored as JSON."""
        summary = RunSummary(run_id="run-1", started_at=datetime.now(timezone.utc), processed=1)
        summary.record_error("CatalogUnavailable", "after 3 attempts", coordinate)
        summary.status = RunStatus.FAILED

        sqlite_store.append_run_log(summary)

        rows = _rows_as_dicts(sqlite_store, "run_logs")
        assert len(rows) == 1
        assert rows[0]["status"] == "failed"
        errors = json.loads(rows[0]["errors"])
        assert errors[0]["error_type"] == "CatalogUnavailable"
        assert "ubi8/ubi" in errors[0]["coordinate"]


class TestErrors:
    """Tests for error mapping."""

    def test_unknown_table(self, sqlite_store):
        """Test that arbitrary table names are rejected."""
        with pytest.raises(PersistenceException):
            sqlite_store.read_table("sqlite_master")

    def test_sqlite_errors_are_mapped(self, sqlite_store, coordinate):
        """Test that driver errors surface as PersistenceException."""
        with patch("storage.sqlite_store.sqlite3.connect", side_effect=sqlite3.OperationalError("locked")):
            with pytest.raises(PersistenceException) as exc_info:
                sqlite_store.read_previous_status(coordinate)

        assert exc_info.value.operation == "read_previous_status"

    def test_creates_parent_directory(self, tmp_path):
        """Test that the database directory is created."""
        store = SQLiteStore(tmp_path / "nested" / "vigil.db")
        assert store.database_path.exists()


class TestAdvisoryUrl:
    """Tests for advisory_url."""

    def test_cve_url(self):
        """Test URL for a CVE id."""
        assert "CVE-2024-1234" in advisory_url("CVE-2024-1234")

    def test_placeholder_has_no_url(self):
        """Test that placeholder ids get no URL."""
        assert advisory_url("N/A") == ""
