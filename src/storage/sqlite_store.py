"""
SQLite-backed monitoring store.

Keeps four tables: the image configuration, the current CVE rows of each
coordinate, an append-only history of health snapshots and an
append-only log of runs.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator, Iterable, Optional

from constants import CVE_ADVISORY_URL_TEMPLATE
from core.config import ImageEntry
from core.exceptions import PersistenceException
from core.models import (
    HealthSnapshot,
    HealthStatus,
    ImageCoordinate,
    PreviousStatus,
    RunSummary,
    VulnerabilityRecord,
)
from storage.base import MonitorStore

logger = logging.getLogger(__name__)

TABLES = ("config", "cve_data", "historical", "run_logs")

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS config (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        registry TEXT NOT NULL,
        repository TEXT NOT NULL,
        architectures TEXT NOT NULL,
        streams TEXT NOT NULL,
        enabled INTEGER NOT NULL DEFAULT 1,
        notes TEXT,
        updated_at TEXT,
        UNIQUE (registry, repository)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS cve_data (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        registry TEXT NOT NULL,
        repository TEXT NOT NULL,
        architecture TEXT NOT NULL,
        stream TEXT NOT NULL,
        image_version TEXT,
        cve_id TEXT,
        severity TEXT,
        advisory_id TEXT,
        affected_packages TEXT,
        published_date TEXT,
        advisory_url TEXT,
        description TEXT,
        health_score INTEGER,
        health_status TEXT,
        updated_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS historical (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        recorded_at TEXT NOT NULL,
        registry TEXT NOT NULL,
        repository TEXT NOT NULL,
        architecture TEXT NOT NULL,
        stream TEXT NOT NULL,
        image_version TEXT,
        total_cves INTEGER,
        critical_count INTEGER,
        important_count INTEGER,
        moderate_count INTEGER,
        low_count INTEGER,
        health_score INTEGER,
        health_status TEXT,
        status_change TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS run_logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        run_id TEXT NOT NULL,
        started_at TEXT NOT NULL,
        status TEXT NOT NULL,
        images_checked INTEGER,
        successful INTEGER,
        failed INTEGER,
        cves_found INTEGER,
        health_changes INTEGER,
        notifications_sent INTEGER,
        notifications_failed INTEGER,
        notifications_skipped INTEGER,
        errors TEXT,
        duration_ms INTEGER
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_cve_data_coordinate "
    "ON cve_data (registry, repository, architecture, stream)",
    "CREATE INDEX IF NOT EXISTS idx_historical_coordinate "
    "ON historical (registry, repository, architecture, stream)",
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _coordinate_key(coordinate: ImageCoordinate) -> tuple[str, str, str, str]:
    return (
        coordinate.registry,
        coordinate.repository,
        coordinate.architecture,
        coordinate.stream,
    )


def advisory_url(cve_id: str) -> str:
    """Public advisory URL for a CVE id, empty for placeholder records."""
    if not cve_id.upper().startswith("CVE-"):
        return ""
    return CVE_ADVISORY_URL_TEMPLATE.format(cve_id=cve_id)


class SQLiteStore(MonitorStore):
    """MonitorStore implementation on a local SQLite database."""

    def __init__(self, database_path: Path):
        """
        Initialize store and create tables if needed.

        Args:
            database_path: SQLite database file (created if missing)
        """
        self.database_path = Path(database_path)
        if self.database_path.parent != Path("."):
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _db_connection(self, operation: str) -> Generator[sqlite3.Connection, None, None]:
        """
        Open a connection, commit on success and map sqlite errors.

        Args:
            operation: Store operation name used in error messages
        """
        conn = None
        try:
            conn = sqlite3.connect(self.database_path)
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            if conn is not None:
                conn.rollback()
            raise PersistenceException(operation, str(e)) from e
        finally:
            if conn is not None:
                conn.close()

    def _init_db(self) -> None:
        with self._db_connection("init") as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    def sync_configured_images(self, entries: Iterable[ImageEntry]) -> int:
        """
        Upsert configured entries and disable rows absent from the configuration.

        Returns:
            Number of entries written
        """
        entries = list(entries)
        updated_at = _now()

        with self._db_connection("sync_configured_images") as conn:
            conn.execute("UPDATE config SET enabled = 0")
            for entry in entries:
                conn.execute(
                    """
                    INSERT INTO config
                    (registry, repository, architectures, streams, enabled, notes, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT (registry, repository) DO UPDATE SET
                        architectures = excluded.architectures,
                        streams = excluded.streams,
                        enabled = excluded.enabled,
                        notes = excluded.notes,
                        updated_at = excluded.updated_at
                    """,
                    (
                        entry.registry,
                        entry.repository,
                        ",".join(entry.architectures),
                        ",".join(entry.streams),
                        int(entry.enabled),
                        entry.notes,
                        updated_at,
                    ),
                )

        logger.debug(f"Synced {len(entries)} configured images to {self.database_path}")
        return len(entries)

    def read_configured_coordinates(self) -> list[ImageCoordinate]:
        with self._db_connection("read_configured_coordinates") as conn:
            rows = conn.execute(
                """
                SELECT registry, repository, architectures, streams
                FROM config
                WHERE enabled = 1
                ORDER BY id
                """
            ).fetchall()

        coordinates: list[ImageCoordinate] = []
        for registry, repository, architectures, streams in rows:
            entry = ImageEntry(
                repository=repository,
                registry=registry,
                architectures=tuple(a for a in architectures.split(",") if a),
                streams=tuple(s for s in streams.split(",") if s),
            )
            coordinates.extend(entry.coordinates())
        return coordinates

    def read_previous_status(self, coordinate: ImageCoordinate) -> Optional[PreviousStatus]:
        # Lookup-miss placeholders are Unknown and never count as an observation
        with self._db_connection("read_previous_status") as conn:
            row = conn.execute(
                """
                SELECT health_status, health_score
                FROM historical
                WHERE registry = ? AND repository = ? AND architecture = ? AND stream = ?
                  AND health_status != ?
                ORDER BY id DESC
                LIMIT 1
                """,
                _coordinate_key(coordinate) + (HealthStatus.UNKNOWN.value,),
            ).fetchone()

        if row is None:
            return None
        return PreviousStatus(status=HealthStatus.from_value(row[0]), score=row[1] or 0)

    def write_current_vulnerabilities(
        self,
        coordinate: ImageCoordinate,
        resolved_version: str,
        records: list[VulnerabilityRecord],
        snapshot: HealthSnapshot,
    ) -> None:
        updated_at = _now()
        key = _coordinate_key(coordinate)

        with self._db_connection("write_current_vulnerabilities") as conn:
            conn.execute(
                """
                DELETE FROM cve_data
                WHERE registry = ? AND repository = ? AND architecture = ? AND stream = ?
                """,
                key,
            )
            conn.executemany(
                """
                INSERT INTO cve_data
                (registry, repository, architecture, stream, image_version, cve_id,
                 severity, advisory_id, affected_packages, published_date, advisory_url,
                 description, health_score, health_status, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    key
                    + (
                        resolved_version,
                        record.cve_id,
                        record.severity.value,
                        record.advisory_id,
                        ", ".join(record.affected_packages),
                        record.published_date,
                        advisory_url(record.cve_id),
                        record.description,
                        snapshot.score,
                        snapshot.status.value,
                        updated_at,
                    )
                    for record in records
                ],
            )

        logger.debug(f"Wrote {len(records)} CVE rows for {coordinate}")

    def append_historical_snapshot(
        self,
        coordinate: ImageCoordinate,
        snapshot: HealthSnapshot,
        transition_description: str,
        version: str = "",
    ) -> None:
        counts = snapshot.severity_counts
        with self._db_connection("append_historical_snapshot") as conn:
            conn.execute(
                """
                INSERT INTO historical
                (recorded_at, registry, repository, architecture, stream, image_version,
                 total_cves, critical_count, important_count, moderate_count, low_count,
                 health_score, health_status, status_change)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (snapshot.computed_at.isoformat(),)
                + _coordinate_key(coordinate)
                + (
                    version,
                    counts.total,
                    counts.critical,
                    counts.important,
                    counts.moderate,
                    counts.low,
                    snapshot.score,
                    snapshot.status.value,
                    transition_description,
                ),
            )

    def append_run_log(self, summary: RunSummary) -> None:
        with self._db_connection("append_run_log") as conn:
            conn.execute(
                """
                INSERT INTO run_logs
                (run_id, started_at, status, images_checked, successful, failed,
                 cves_found, health_changes, notifications_sent, notifications_failed,
                 notifications_skipped, errors, duration_ms)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    summary.run_id,
                    summary.started_at.isoformat(),
                    summary.status.value,
                    summary.processed,
                    summary.succeeded,
                    summary.failed,
                    summary.total_cves,
                    summary.health_changes,
                    summary.notifications_sent,
                    summary.notifications_failed,
                    summary.notifications_skipped,
                    json.dumps([error.to_dict() for error in summary.errors]),
                    summary.duration_ms,
                ),
            )

    def read_table(self, name: str) -> tuple[list[str], list[tuple]]:
        if name not in TABLES:
            raise PersistenceException("read_table", f"unknown table '{name}'")

        with self._db_connection("read_table") as conn:
            # Table name is checked against TABLES above
            cursor = conn.execute(f"SELECT * FROM {name} ORDER BY id")
            columns = [description[0] for description in cursor.description]
            rows = cursor.fetchall()

        return columns, rows
