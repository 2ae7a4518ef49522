"""Tests for Slack webhook notifications."""

import pytest
from dataclasses import replace
from unittest.mock import MagicMock, patch
import requests

from core.exceptions import NotificationException
from core.models import HealthStatus
from integrations.slack_notifier import SlackNotifier, status_emoji

WEBHOOK = "https://hooks.slack.test/services/T000/B000/XXX"


def _texts(payload):
    texts = []
    for block in payload["blocks"]:
        if "text" in block:
            texts.append(block["text"]["text"])
        for item in block.get("fields", []) + block.get("elements", []):
            texts.append(item["text"])
    return "\n".join(texts)


class TestBuildPayload:
    """Tests for Block Kit payload construction."""

    def test_fallback_text(self, transition_event):
        """Test the top-level text used by notifications without blocks."""
        payload = SlackNotifier(WEBHOOK).build_payload(transition_event)
        assert payload["text"] == (
            ":rotating_light: Container Health Alert: "
            "registry.access.redhat.com/ubi8/ubi - Critical"
        )

    def test_body_contents(self, transition_event):
        """Test that status change, counts and CVEs are listed."""
        text = _texts(SlackNotifier(WEBHOOK).build_payload(transition_event))

        assert "`Healthy` →" in text
        assert "`Critical`" in text
        assert "100 → 70" in text
        assert "• CVE-2024-0001" in text
        assert "openssl" not in text

    def test_packages_when_enabled(self, transition_event):
        """Test that packages are listed only when requested."""
        text = _texts(SlackNotifier(WEBHOOK, include_packages=True).build_payload(transition_event))
        assert "• openssl" in text

    def test_mentions(self, transition_event):
        """Test that configured users are mentioned."""
        text = _texts(SlackNotifier(WEBHOOK, mention_users=["U123"]).build_payload(transition_event))
        assert "<@U123>" in text

    def test_long_cve_list_truncated(self, transition_event):
        """Test that long lists are truncated with a remainder line."""
        event = replace(transition_event, affected_cves=tuple(f"CVE-2024-{i:04d}" for i in range(14)))
        text = _texts(SlackNotifier(WEBHOOK).build_payload(event))

        assert "... and 4 more CVEs" in text

    def test_first_observation_score(self, transition_event):
        """Test that a missing previous score renders as n/a."""
        event = replace(transition_event, previous_status=HealthStatus.UNKNOWN, previous_score=None)
        text = _texts(SlackNotifier(WEBHOOK).build_payload(event))

        assert "n/a → 70" in text
        assert status_emoji(HealthStatus.UNKNOWN) == ":question:"


@patch("integrations.slack_notifier.requests.post")
class TestSend:
    """Tests for webhook delivery."""

    def test_success(self, mock_post, transition_event):
        """Test a 200 response."""
        mock_post.return_value = MagicMock(status_code=200, text="ok")

        SlackNotifier(WEBHOOK, timeout=5).send(transition_event)

        mock_post.assert_called_once()
        assert mock_post.call_args.args[0] == WEBHOOK
        assert mock_post.call_args.kwargs["timeout"] == 5
        assert "blocks" in mock_post.call_args.kwargs["json"]

    def test_non_200_raises(self, mock_post, transition_event):
        """Test that webhook errors raise NotificationException."""
        mock_post.return_value = MagicMock(status_code=404, text="no_service")

        with pytest.raises(NotificationException) as exc_info:
            SlackNotifier(WEBHOOK).send(transition_event)

        assert exc_info.value.channel == "slack"
        assert "404" in str(exc_info.value)

    def test_transport_error_raises(self, mock_post, transition_event):
        """Test that connection errors raise NotificationException."""
        mock_post.side_effect = requests.ConnectionError("refused")

        with pytest.raises(NotificationException):
            SlackNotifier(WEBHOOK).send(transition_event)
