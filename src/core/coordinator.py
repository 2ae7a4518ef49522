"""
Run coordination.

Iterates the configured coordinates sequentially, persists each unit's
outcome, queues notifications for changed transitions and dispatches them
once every unit has finished. Exactly one run-log row is written per run.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional

from core.config import RunSettings
from core.exceptions import ConfigurationException, PersistenceException, VigilException
from core.health import critical_and_important_cves
from core.models import (
    DeliveryStatus,
    ImageCoordinate,
    RunStatus,
    RunSummary,
    Severity,
    TransitionEvent,
    UnitFailure,
    UnitOutcome,
    UnitResult,
)
from core.notification_queue import NotificationQueue
from core.notification_service import NotificationService
from core.pipeline import PipelineOrchestrator
from storage.base import MonitorStore
from utils.logging_helpers import log_info_header, log_run_summary

logger = logging.getLogger(__name__)


def build_transition_event(run_id: str, result: UnitResult) -> TransitionEvent:
    """Create the notification intent for a changed transition."""
    severe = [
        record
        for record in result.records
        if record.severity in (Severity.CRITICAL, Severity.IMPORTANT)
    ]
    packages = dict.fromkeys(pkg for record in severe for pkg in record.affected_packages)
    counts = result.snapshot.severity_counts

    return TransitionEvent(
        run_id=run_id,
        coordinate=result.coordinate,
        image_version=result.build.display_version,
        previous_status=result.transition.previous_status,
        current_status=result.transition.current_status,
        previous_score=result.transition.previous_score,
        current_score=result.transition.current_score,
        critical_count=counts.critical,
        important_count=counts.important,
        affected_cves=tuple(critical_and_important_cves(result.records)),
        affected_packages=tuple(packages),
    )


class RunCoordinator:
    """
    Runs the pipeline over a set of coordinates and aggregates the outcome.

    Units run strictly one after another. The summary and the notification
    queue are owned by the coordinator and mutated only from run().
    """

    def __init__(
        self,
        pipeline: PipelineOrchestrator,
        store: MonitorStore,
        notification_service: Optional[NotificationService] = None,
        settings: RunSettings = RunSettings(),
    ):
        """
        Initialize run coordinator.

        Args:
            pipeline: Per-coordinate pipeline
            store: Store receiving results, history and the run log
            notification_service: Alert dispatcher (None disables alerts)
            settings: Immutable run settings
        """
        self.pipeline = pipeline
        self.store = store
        self.notification_service = notification_service
        self.settings = settings

    def run_configured(self) -> RunSummary:
        """
        Run over the coordinates stored in the configuration table.

        A failure to read the configuration aborts the run with status
        failed and zero processed units.
        """
        summary = self._new_summary()

        try:
            coordinates = self.store.read_configured_coordinates()
        except VigilException as e:
            logger.error(f"Could not read configured images: {e}")
            summary.record_error(ConfigurationException.__name__, str(e))
            return self._finish(summary)

        return self.run(coordinates, summary)

    def run(
        self,
        coordinates: Iterable[ImageCoordinate],
        summary: Optional[RunSummary] = None,
    ) -> RunSummary:
        """
        Process every coordinate and dispatch queued notifications.

        Args:
            coordinates: Units to process, in order
            summary: Summary to accumulate into (a new one if omitted)

        Returns:
            Finished RunSummary
        """
        summary = summary or self._new_summary()
        coordinates = list(coordinates)
        queue = NotificationQueue()

        log_info_header(
            f"Vigil run {summary.run_id}: {len(coordinates)} coordinates",
            logger=logger,
        )

        if not coordinates:
            logger.error("No enabled coordinates configured; nothing to process")
            summary.record_error(ConfigurationException.__name__, "No enabled coordinates configured")

        for index, coordinate in enumerate(coordinates, 1):
            logger.debug(f"Unit {index}/{len(coordinates)}: {coordinate}")
            outcome = self._process(coordinate)
            self._record(summary, outcome, queue)

        self._dispatch(summary, queue)
        return self._finish(summary)

    def _process(self, coordinate: ImageCoordinate) -> UnitOutcome:
        """Run one unit and persist its outcome."""
        outcome = self.pipeline.run_unit(coordinate)

        try:
            if isinstance(outcome, UnitResult):
                self._persist(
                    coordinate,
                    outcome.build.display_version,
                    list(outcome.records),
                    outcome,
                )
            elif outcome.is_lookup_miss:
                self._persist(coordinate, "", [outcome.placeholder], outcome)
        except PersistenceException as e:
            logger.error(f"Failed to persist results for {coordinate}: {e}")
            if isinstance(outcome, UnitResult):
                return UnitFailure(coordinate, type(e).__name__, str(e))
            return UnitFailure(
                coordinate,
                outcome.error_type,
                f"{outcome.error_message}; {e}",
            )

        return outcome

    def _persist(self, coordinate, version, records, outcome) -> None:
        if isinstance(outcome, UnitResult):
            description = outcome.transition.describe()
        else:
            description = f"Lookup miss: {outcome.error_message}"

        self.store.write_current_vulnerabilities(coordinate, version, records, outcome.snapshot)
        self.store.append_historical_snapshot(coordinate, outcome.snapshot, description, version)

    def _record(
        self,
        summary: RunSummary,
        outcome: UnitOutcome,
        queue: NotificationQueue,
    ) -> None:
        summary.processed += 1

        if isinstance(outcome, UnitFailure):
            summary.failed += 1
            summary.record_error(outcome.error_type, outcome.error_message, outcome.coordinate)
            return

        summary.succeeded += 1
        summary.total_cves += len(outcome.records)

        if outcome.transition.changed:
            summary.health_changes += 1
            queue.add(build_transition_event(summary.run_id, outcome))

    def _dispatch(self, summary: RunSummary, queue: NotificationQueue) -> None:
        """Offer every queued event to the notification service."""
        if queue.is_empty():
            return

        if self.notification_service is None or not self.settings.notifications_enabled:
            logger.info(f"Notifications disabled; skipping {queue.size()} queued events")
            summary.notifications_skipped += queue.size()
            queue.clear()
            return

        logger.info(f"Dispatching {queue.size()} notifications")
        for event in queue.get_all():
            outcome = self.notification_service.send(event)
            if outcome.status == DeliveryStatus.SUCCESS:
                summary.notifications_sent += 1
            elif outcome.status == DeliveryStatus.FAILED:
                summary.notifications_failed += 1
                summary.record_error(
                    "NotificationFailed",
                    outcome.error_message or "All channels failed",
                    event.coordinate,
                )
            else:
                summary.notifications_skipped += 1
        queue.clear()

    def _finish(self, summary: RunSummary) -> RunSummary:
        """Finalize status and duration, then write the single run-log row."""
        summary.finalize_status()
        elapsed = datetime.now(timezone.utc) - summary.started_at
        summary.duration_ms = max(0, int(elapsed.total_seconds() * 1000))

        try:
            self.store.append_run_log(summary)
        except VigilException as e:
            logger.error(f"Failed to write run log for {summary.run_id}: {e}")

        log_run_summary(summary, logger=logger)
        return summary

    @staticmethod
    def _new_summary() -> RunSummary:
        return RunSummary(
            run_id=str(uuid.uuid4()),
            started_at=datetime.now(timezone.utc),
            status=RunStatus.RUNNING,
        )
