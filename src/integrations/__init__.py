"""Integrations with external services."""

from integrations.catalog_client import CatalogClient
from integrations.email_notifier import EmailNotifier
from integrations.slack_notifier import SlackNotifier

__all__ = [
    "CatalogClient",
    "EmailNotifier",
    "SlackNotifier",
]
