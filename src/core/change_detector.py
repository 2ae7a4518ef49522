"""
Status change detection between consecutive runs.
"""

import logging
from typing import Optional

from core.models import (
    HealthSnapshot,
    HealthStatus,
    ImageCoordinate,
    PreviousStatus,
    Transition,
)

logger = logging.getLogger(__name__)


class ChangeDetector:
    """
    Compares a freshly computed snapshot with the last persisted status.

    A coordinate with no persisted status is treated as Unknown. Since no
    computed snapshot is ever Unknown, the first observation of a
    coordinate always counts as a change; whether that produces an alert
    is decided by the notification service's severity threshold.
    """

    def detect(
        self,
        coordinate: ImageCoordinate,
        current: HealthSnapshot,
        previous: Optional[PreviousStatus],
    ) -> Transition:
        """
        Build the transition for a coordinate.

        Args:
            coordinate: Unit being evaluated (used for logging only)
            current: Snapshot computed in this run
            previous: Last persisted status, or None if never observed

        Returns:
            Transition with changed == (previous status != current status)
        """
        if previous is None:
            previous_status = HealthStatus.UNKNOWN
            previous_score = None
        else:
            previous_status = previous.status
            previous_score = previous.score

        transition = Transition(
            previous_status=previous_status,
            current_status=current.status,
            changed=previous_status != current.status,
            current_score=current.score,
            previous_score=previous_score,
        )

        if transition.changed:
            logger.info(f"Status change for {coordinate}: {transition.describe()}")
        else:
            logger.debug(f"No status change for {coordinate} ({current.status.value})")

        return transition
