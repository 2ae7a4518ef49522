"""
Logging helper utilities for the Vigil CLI.

Provides consistent banner formatting for run headers, error sections and
end-of-run summaries.
"""

import logging
from typing import List, Optional

from core.models import RunStatus, RunSummary


def log_error_section(
    title: str,
    messages: List[str],
    logger: Optional[logging.Logger] = None,
    width: int = 60
) -> None:
    """
    Log an error section with separator lines and multiple messages.

    Args:
        title: Title message for the error section
        messages: List of error messages to display
        logger: Logger instance (defaults to root logger if not provided)
        width: Width of separator line in characters

    Examples:
        >>> log_error_section(
        ...     "Configuration could not be loaded",
        ...     ["File not found: monitor.yaml", "Pass -c/--config"]
        ... )
        ============================================================
        Configuration could not be loaded
        File not found: monitor.yaml
        Pass -c/--config
        ============================================================
    """
    if logger is None:
        logger = logging.getLogger()

    logger.error("=" * width)
    logger.error(title)

    for message in messages:
        logger.error(message or "")

    logger.error("=" * width)


def log_info_header(
    message: str,
    logger: Optional[logging.Logger] = None,
    width: int = 60,
    char: str = "="
) -> None:
    """
    Log an informational header with separator lines.

    Args:
        message: Header message to display
        logger: Logger instance (defaults to root logger if not provided)
        width: Width of separator line in characters
        char: Character to use for separator line
    """
    if logger is None:
        logger = logging.getLogger()

    logger.info(char * width)
    logger.info(message)
    logger.info(char * width)


def log_run_summary(
    summary: RunSummary,
    logger: Optional[logging.Logger] = None,
    width: int = 60,
    max_errors: int = 10
) -> None:
    """
    Log the outcome of a monitoring run.

    Failed runs are logged at ERROR level; per-unit errors are listed up to
    max_errors entries.

    Args:
        summary: Finished run summary
        logger: Logger instance (defaults to root logger if not provided)
        width: Width of separator line in characters
        max_errors: Maximum number of errors to list
    """
    if logger is None:
        logger = logging.getLogger()

    log = logger.error if summary.status == RunStatus.FAILED else logger.info

    log("=" * width)
    log(f"Run {summary.run_id}: {summary.status.value.upper()}")
    log(
        f"Processed {summary.processed} | succeeded {summary.succeeded} | "
        f"failed {summary.failed}"
    )
    log(f"CVEs found: {summary.total_cves} | health changes: {summary.health_changes}")
    log(
        f"Notifications sent {summary.notifications_sent} | "
        f"failed {summary.notifications_failed} | skipped {summary.notifications_skipped}"
    )
    log(f"Duration: {summary.duration_ms / 1000:.1f}s")

    if summary.errors:
        log(f"Errors ({len(summary.errors)}):")
        for error in summary.errors[:max_errors]:
            subject = f"{error.coordinate}: " if error.coordinate else ""
            log(f"  - {subject}{error.error_type}: {error.error_message}")
        if len(summary.errors) > max_errors:
            log(f"  ... and {len(summary.errors) - max_errors} more")

    log("=" * width)
