"""
Centralized configuration constants for Vigil.

This module provides a single source of truth for defaults that are
shared between the configuration loader, the catalog client and the
pipeline.
"""

# ============================================================================
# Catalog Service
# ============================================================================

DEFAULT_CATALOG_ENDPOINT = "https://catalog.redhat.com/api/containers/graphql/"
"""GraphQL endpoint of the Red Hat Container Catalog."""

DEFAULT_REGISTRY = "registry.access.redhat.com"
"""Registry used when an image entry does not name one."""

MAX_IMAGES_PAGE_SIZE = 500
"""Largest page the catalog accepts for image listings."""

MAX_VULNERABILITIES_PAGE_SIZE = 250
"""Largest page the catalog accepts for vulnerability listings."""

DEFAULT_IMAGES_PAGE_SIZE = 500
DEFAULT_VULNERABILITIES_PAGE_SIZE = 250

CVE_ADVISORY_URL_TEMPLATE = "https://access.redhat.com/security/cve/{cve_id}"
"""Public advisory page for a CVE, written alongside each stored record."""

# ============================================================================
# Retry Policy
# ============================================================================

DEFAULT_MAX_ATTEMPTS = 3
"""Total attempts per catalog query (first try included)."""

DEFAULT_BACKOFF_BASE_SECONDS = 1.0
"""Delay before the second attempt; doubles for each further attempt."""

# ============================================================================
# Timeouts
# ============================================================================

API_REQUEST_TIMEOUT = 30
"""Timeout for catalog API requests (30 seconds)."""

WEBHOOK_TIMEOUT = 10
"""Timeout for Slack webhook posts (10 seconds)."""

SMTP_TIMEOUT = 30
"""Timeout for SMTP connections (30 seconds)."""

# ============================================================================
# Image Coordinates
# ============================================================================

SUPPORTED_ARCHITECTURES = ("amd64", "arm64", "ppc64le", "s390x")
"""Architectures published by the catalog."""

DEFAULT_ARCHITECTURE = "amd64"

LATEST_STREAM = "latest"
"""Stream sentinel meaning 'newest build regardless of version prefix'."""

# ============================================================================
# Health Index
# ============================================================================

SEVERITY_PENALTIES = {
    "Critical": 20,
    "Important": 10,
    "Moderate": 5,
    "Low": 1,
    "None": 0,
}
"""Points subtracted from a perfect score of 100 per CVE of each severity."""

MAX_HEALTH_SCORE = 100

# ============================================================================
# Notifications
# ============================================================================

DEFAULT_SEVERITY_THRESHOLD = "Important"
"""Minimum severity that must be present for an alert to be delivered."""

DEFAULT_EMAIL_FROM_NAME = "Vigil Container Health Monitor"

# ============================================================================
# Storage
# ============================================================================

DEFAULT_DATABASE_PATH = "vigil.db"
"""SQLite database holding configuration, CVE data, history and run logs."""
