"""
E-mail notifications over SMTP.

Alerts are composed as Markdown, rendered to HTML and sent as a
multipart message with a plain-text alternative.
"""

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional, Sequence

from constants import SMTP_TIMEOUT
from core.exceptions import NotificationException
from core.models import HealthStatus, TransitionEvent
from utils.markdown_utils import render_markdown

logger = logging.getLogger(__name__)

MAX_LISTED_CVES = 20
MAX_LISTED_PACKAGES = 30

_STATUS_COLORS = {
    HealthStatus.CRITICAL: "#dc3545",
    HealthStatus.AT_RISK: "#fd7e14",
    HealthStatus.HEALTHY: "#28a745",
}

_SUBJECT_LABELS = {
    HealthStatus.CRITICAL: "CRITICAL",
    HealthStatus.AT_RISK: "AT RISK",
}


class EmailNotifier:
    """Sends transition alerts to a fixed recipient list."""

    channel_name = "email"

    def __init__(
        self,
        recipients: Sequence[str],
        from_address: str,
        from_name: str,
        smtp_host: str = "localhost",
        smtp_port: int = 587,
        smtp_username: Optional[str] = None,
        smtp_password: Optional[str] = None,
        use_tls: bool = True,
        include_packages: bool = False,
        timeout: float = SMTP_TIMEOUT,
    ):
        self.recipients = list(recipients)
        self.from_address = from_address
        self.from_name = from_name
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_username = smtp_username
        self.smtp_password = smtp_password
        self.use_tls = use_tls
        self.include_packages = include_packages
        self.timeout = timeout

    def send(self, event: TransitionEvent) -> None:
        """
        Deliver an alert to every recipient.

        Raises:
            NotificationException: If the SMTP conversation fails
        """
        message = self.build_message(event)

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.smtp_username:
                    smtp.login(self.smtp_username, self.smtp_password or "")
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationException(self.channel_name, str(e)) from e

        logger.debug(
            f"E-mail alert for {event.coordinate} sent to {len(self.recipients)} recipients"
        )

    def build_subject(self, event: TransitionEvent) -> str:
        label = _SUBJECT_LABELS.get(event.current_status, "ALERT")
        return f"[{label}] Container Health Alert: {event.coordinate.image_path}"

    def build_markdown(self, event: TransitionEvent) -> str:
        """Compose the alert body as Markdown."""
        coordinate = event.coordinate
        previous_score = "n/a" if event.previous_score is None else event.previous_score

        lines = [
            "# Container Health Alert",
            "",
            "## Container Image",
            "",
            f"- **Registry:** {coordinate.registry}",
            f"- **Repository:** {coordinate.repository}",
            f"- **Architecture:** {coordinate.architecture}",
            f"- **Stream:** {coordinate.stream}",
            f"- **Version:** {event.image_version}",
            "",
            "## Health Status Change",
            "",
            f"**{event.previous_status.value}** → **{event.current_status.value}**",
            "",
            f"Health score: {previous_score} → {event.current_score}",
            "",
            "## Vulnerability Summary",
            "",
            "| Severity | Count |",
            "| --- | --- |",
            f"| Critical | {event.critical_count} |",
            f"| Important | {event.important_count} |",
            "",
        ]

        if event.affected_cves:
            lines += ["## Affected CVEs", ""]
            lines += [f"- {cve}" for cve in event.affected_cves[:MAX_LISTED_CVES]]
            if len(event.affected_cves) > MAX_LISTED_CVES:
                lines.append(f"- *... and {len(event.affected_cves) - MAX_LISTED_CVES} more CVEs*")
            lines.append("")

        if self.include_packages and event.affected_packages:
            lines += ["## Affected Packages", ""]
            lines += [f"- {pkg}" for pkg in event.affected_packages[:MAX_LISTED_PACKAGES]]
            if len(event.affected_packages) > MAX_LISTED_PACKAGES:
                lines.append(
                    f"- *... and {len(event.affected_packages) - MAX_LISTED_PACKAGES} more packages*"
                )
            lines.append("")

        lines += [
            "---",
            "",
            f"Automated notification from Vigil (run {event.run_id}), "
            f"triggered {event.triggered_at.strftime('%Y-%m-%d %H:%M:%S %Z')}.",
        ]
        return "\n".join(lines)

    def build_message(self, event: TransitionEvent) -> EmailMessage:
        body = self.build_markdown(event)
        color = _STATUS_COLORS.get(event.current_status, "#6c757d")

        message = EmailMessage()
        message["Subject"] = self.build_subject(event)
        message["From"] = formataddr((self.from_name, self.from_address))
        message["To"] = ", ".join(self.recipients)
        message.set_content(body)
        message.add_alternative(render_markdown(body, accent=color), subtype="html")
        return message
