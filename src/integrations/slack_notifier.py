"""
Slack notifications via incoming webhooks.

Formats health transitions as Block Kit messages.
"""

import logging
from typing import Optional, Sequence

import requests

from constants import WEBHOOK_TIMEOUT
from core.exceptions import NotificationException
from core.models import HealthStatus, TransitionEvent

logger = logging.getLogger(__name__)

MAX_LISTED_CVES = 10
MAX_LISTED_PACKAGES = 15

_STATUS_EMOJI = {
    HealthStatus.CRITICAL: ":rotating_light:",
    HealthStatus.AT_RISK: ":warning:",
    HealthStatus.HEALTHY: ":white_check_mark:",
}


def status_emoji(status: HealthStatus) -> str:
    return _STATUS_EMOJI.get(status, ":question:")


def _bulleted(items: Sequence[str], limit: int, noun: str) -> str:
    lines = "\n".join(f"• {item}" for item in items[:limit])
    if len(items) > limit:
        lines += f"\n_... and {len(items) - limit} more {noun}_"
    return lines


class SlackNotifier:
    """Posts transition alerts to a Slack incoming webhook."""

    channel_name = "slack"

    def __init__(
        self,
        webhook_url: str,
        mention_users: Optional[Sequence[str]] = None,
        include_packages: bool = False,
        timeout: float = WEBHOOK_TIMEOUT,
    ):
        """
        Initialize Slack notifier.

        Args:
            webhook_url: Incoming webhook URL
            mention_users: Slack user ids to mention in each alert
            include_packages: Whether to list affected packages
            timeout: HTTP timeout in seconds
        """
        self.webhook_url = webhook_url
        self.mention_users = list(mention_users or [])
        self.include_packages = include_packages
        self.timeout = timeout

    def send(self, event: TransitionEvent) -> None:
        """
        Deliver an alert.

        Raises:
            NotificationException: If the webhook does not answer with HTTP 200
        """
        payload = self.build_payload(event)

        try:
            response = requests.post(self.webhook_url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise NotificationException(self.channel_name, str(e)) from e

        if response.status_code != 200:
            raise NotificationException(
                self.channel_name,
                f"webhook returned {response.status_code}: {response.text[:200]}",
            )

        logger.debug(f"Slack alert sent for {event.coordinate}")

    def build_payload(self, event: TransitionEvent) -> dict:
        """Build the Block Kit payload for an event."""
        coordinate = event.coordinate
        emoji = status_emoji(event.current_status)
        previous_score = "n/a" if event.previous_score is None else event.previous_score

        blocks: list[dict] = [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": f"{emoji} Container Health Alert",
                    "emoji": True,
                },
            },
            {"type": "divider"},
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Registry:*\n{coordinate.registry}"},
                    {"type": "mrkdwn", "text": f"*Repository:*\n{coordinate.repository}"},
                    {"type": "mrkdwn", "text": f"*Version:*\n{event.image_version}"},
                    {
                        "type": "mrkdwn",
                        "text": f"*Architecture / Stream:*\n{coordinate.architecture} / {coordinate.stream}",
                    },
                ],
            },
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": (
                        "*Health Status Change:*\n"
                        f"{status_emoji(event.previous_status)} `{event.previous_status.value}` → "
                        f"{emoji} `{event.current_status.value}`"
                    ),
                },
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*:red_circle: Critical CVEs:*\n{event.critical_count}"},
                    {
                        "type": "mrkdwn",
                        "text": f"*:large_orange_diamond: Important CVEs:*\n{event.important_count}",
                    },
                    {"type": "mrkdwn", "text": f"*Affected CVEs:*\n{len(event.affected_cves)}"},
                    {
                        "type": "mrkdwn",
                        "text": f"*Health Score:*\n{previous_score} → {event.current_score}",
                    },
                ],
            },
        ]

        if event.affected_cves:
            blocks.append({
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": "*Affected CVEs:*\n"
                    + _bulleted(event.affected_cves, MAX_LISTED_CVES, "CVEs"),
                },
            })

        if self.include_packages and event.affected_packages:
            blocks.append({
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": "*Affected Packages:*\n"
                    + _bulleted(event.affected_packages, MAX_LISTED_PACKAGES, "packages"),
                },
            })

        if self.mention_users:
            mentions = " ".join(f"<@{user}>" for user in self.mention_users)
            blocks.append({
                "type": "context",
                "elements": [{"type": "mrkdwn", "text": f"Notifying: {mentions}"}],
            })

        blocks.append({"type": "divider"})
        blocks.append({
            "type": "context",
            "elements": [
                {
                    "type": "mrkdwn",
                    "text": f"_Automated notification from Vigil, run {event.run_id}_",
                }
            ],
        })

        return {
            "text": (
                f"{emoji} Container Health Alert: {coordinate.image_path} "
                f"- {event.current_status.value}"
            ),
            "blocks": blocks,
        }
