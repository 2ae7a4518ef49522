"""Tests for SMTP e-mail notifications."""

import smtplib
import pytest
from dataclasses import replace
from unittest.mock import patch

from core.exceptions import NotificationException
from core.models import HealthStatus
from integrations.email_notifier import EmailNotifier


@pytest.fixture
def notifier():
    """E-mail notifier with two recipients."""
    return EmailNotifier(
        recipients=["ops@example.com", "sec@example.com"],
        from_address="vigil@example.com",
        from_name="Vigil",
        smtp_host="smtp.example.com",
        smtp_port=587,
    )


class TestComposition:
    """Tests for subject and body composition."""

    def test_subject_labels(self, notifier, transition_event):
        """Test subject prefixes per status."""
        at_risk = replace(transition_event, current_status=HealthStatus.AT_RISK)
        healthy = replace(transition_event, current_status=HealthStatus.HEALTHY)

        assert notifier.build_subject(transition_event) == (
            "[CRITICAL] Container Health Alert: registry.access.redhat.com/ubi8/ubi"
        )
        assert notifier.build_subject(at_risk).startswith("[AT RISK]")
        assert notifier.build_subject(healthy).startswith("[ALERT]")

    def test_markdown_body(self, notifier, transition_event):
        """Test the Markdown summary."""
        body = notifier.build_markdown(transition_event)

        assert "**Healthy** → **Critical**" in body
        assert "| Critical | 1 |" in body
        assert "- CVE-2024-0002" in body
        assert "Affected Packages" not in body

    def test_packages_included_when_enabled(self, notifier, transition_event):
        """Test that package lists are opt-in."""
        notifier.include_packages = True
        assert "- glibc" in notifier.build_markdown(transition_event)

    def test_multipart_message(self, notifier, transition_event):
        """Test headers and the HTML alternative."""
        message = notifier.build_message(transition_event)

        assert message["To"] == "ops@example.com, sec@example.com"
        assert message["From"] == "Vigil <vigil@example.com>"
        html = message.get_body(preferencelist=("html",)).get_content()
        assert "<li>CVE-2024-0001</li>" in html
        assert "<table>" in html
        assert "#dc3545" in html


@patch("integrations.email_notifier.smtplib.SMTP")
class TestSend:
    """Tests for SMTP delivery."""

    def test_send_with_tls(self, mock_smtp, notifier, transition_event):
        """Test the default STARTTLS conversation without login."""
        server = mock_smtp.return_value.__enter__.return_value

        notifier.send(transition_event)

        mock_smtp.assert_called_once_with("smtp.example.com", 587, timeout=notifier.timeout)
        server.starttls.assert_called_once()
        server.login.assert_not_called()
        server.send_message.assert_called_once()

    def test_login_when_username_set(self, mock_smtp, notifier, transition_event):
        """Test authentication with configured credentials."""
        server = mock_smtp.return_value.__enter__.return_value
        notifier.smtp_username = "vigil"
        notifier.smtp_password = "secret"

        notifier.send(transition_event)

        server.login.assert_called_once_with("vigil", "secret")

    def test_smtp_error_raises(self, mock_smtp, notifier, transition_event):
        """Test that SMTP failures raise NotificationException."""
        server = mock_smtp.return_value.__enter__.return_value
        server.send_message.side_effect = smtplib.SMTPRecipientsRefused({})

        with pytest.raises(NotificationException) as exc_info:
            notifier.send(transition_event)

        assert exc_info.value.channel == "email"

    def test_connection_error_raises(self, mock_smtp, notifier, transition_event):
        """Test that socket errors raise NotificationException."""
        mock_smtp.side_effect = ConnectionRefusedError("refused")

        with pytest.raises(NotificationException):
            notifier.send(transition_event)
