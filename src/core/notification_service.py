"""
Multi-channel notification dispatch.

Applies alert filtering (status change and severity threshold) and fans a
single transition event out to every configured channel.
"""

import logging
from typing import Optional, Sequence

from core.config import NotificationSettings
from core.exceptions import NotificationException
from core.models import (
    DeliveryOutcome,
    DeliveryStatus,
    HealthStatus,
    ImageCoordinate,
    Severity,
    TransitionEvent,
)
from integrations.email_notifier import EmailNotifier
from integrations.slack_notifier import SlackNotifier

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Dispatches transition events to notification channels.

    A channel is any object with a `channel_name` attribute and a
    `send(event)` method that raises NotificationException on failure.
    """

    def __init__(
        self,
        channels: Optional[Sequence] = None,
        severity_threshold: Optional[Severity] = Severity.IMPORTANT,
        notify_only_on_status_change: bool = True,
    ):
        """
        Initialize notification service.

        Args:
            channels: Channel notifiers to fan out to
            severity_threshold: Minimum severity required to alert (None disables the check)
            notify_only_on_status_change: Skip events whose status did not change
        """
        self.channels = list(channels or [])
        self.severity_threshold = severity_threshold
        self.notify_only_on_status_change = notify_only_on_status_change

    @classmethod
    def from_settings(cls, settings: NotificationSettings) -> "NotificationService":
        """Build the service and its channels from configuration."""
        channels = []

        if settings.email.is_usable:
            email = settings.email
            channels.append(
                EmailNotifier(
                    recipients=email.recipients,
                    from_address=email.from_address,
                    from_name=email.from_name,
                    smtp_host=email.smtp_host,
                    smtp_port=email.smtp_port,
                    smtp_username=email.smtp_username,
                    smtp_password=email.smtp_password,
                    use_tls=email.use_tls,
                    include_packages=settings.include_detailed_package_list,
                )
            )

        if settings.slack.is_usable:
            channels.append(
                SlackNotifier(
                    webhook_url=settings.slack.webhook_url,
                    mention_users=settings.slack.mention_users,
                    include_packages=settings.include_detailed_package_list,
                )
            )

        return cls(
            channels=channels,
            severity_threshold=settings.severity_threshold,
            notify_only_on_status_change=settings.notify_only_on_status_change,
        )

    def should_notify(self, event: TransitionEvent) -> bool:
        """Apply status-change and severity-threshold filtering."""
        if self.notify_only_on_status_change and event.previous_status == event.current_status:
            return False

        if self.severity_threshold is None:
            return True
        if self.severity_threshold == Severity.CRITICAL:
            return event.critical_count > 0
        if self.severity_threshold == Severity.IMPORTANT:
            return event.critical_count > 0 or event.important_count > 0
        return len(event.affected_cves) > 0

    def send(self, event: TransitionEvent) -> DeliveryOutcome:
        """
        Offer an event to all channels.

        Never raises: channel failures are reported through the outcome.

        Returns:
            SKIPPED when filtered out or no channel is configured, SUCCESS when
            at least one channel delivered, FAILED when every channel failed
        """
        if not self.should_notify(event):
            logger.info(
                f"Skipping notification for {event.coordinate} "
                "(below severity threshold or no status change)"
            )
            return DeliveryOutcome(status=DeliveryStatus.SKIPPED)

        return self._deliver(event)

    def _deliver(self, event: TransitionEvent) -> DeliveryOutcome:
        """Fan an event out to every channel."""
        if not self.channels:
            logger.info(f"No notification channels configured; skipping {event.coordinate}")
            return DeliveryOutcome(
                status=DeliveryStatus.SKIPPED,
                error_message="No notification channels configured",
            )

        attempted: list[str] = []
        delivered = 0
        errors: list[str] = []

        for channel in self.channels:
            attempted.append(channel.channel_name)
            try:
                channel.send(event)
                delivered += 1
            except NotificationException as e:
                logger.error(f"Notification for {event.coordinate} failed: {e}")
                errors.append(str(e))
            except Exception as e:
                logger.error(
                    f"Unexpected {channel.channel_name} error for {event.coordinate}: {e}",
                    exc_info=True,
                )
                errors.append(f"{channel.channel_name} error: {e}")

        if delivered == 0:
            outcome = DeliveryOutcome(
                status=DeliveryStatus.FAILED,
                channels=tuple(attempted),
                error_message="; ".join(errors),
            )
        else:
            outcome = DeliveryOutcome(
                status=DeliveryStatus.SUCCESS,
                channels=tuple(attempted),
                error_message=f"Partial success: {'; '.join(errors)}" if errors else None,
            )

        logger.info(
            f"Notification for {event.coordinate}: {outcome.status.value} "
            f"({', '.join(attempted)})"
        )
        return outcome

    def send_test(self) -> DeliveryOutcome:
        """
        Send a synthetic Healthy -> At Risk event through every channel.

        Filtering is bypassed so the test exercises delivery only.
        """
        logger.info("Sending test notification...")
        event = TransitionEvent(
            run_id="test-run",
            coordinate=ImageCoordinate(
                registry="registry.example.com",
                repository="test/container",
                architecture="amd64",
            ),
            image_version="1.0.0-1",
            previous_status=HealthStatus.HEALTHY,
            current_status=HealthStatus.AT_RISK,
            previous_score=100,
            current_score=80,
            critical_count=0,
            important_count=2,
            affected_cves=("CVE-2024-TEST1", "CVE-2024-TEST2"),
            affected_packages=("test-package-1", "test-package-2"),
        )
        return self._deliver(event)
