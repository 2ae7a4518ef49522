"""
Input validation utilities for Vigil.

Provides validation functions for image coordinates, catalog page sizes,
notification settings and file paths read from the configuration.
"""

import re
from pathlib import Path

from constants import LATEST_STREAM, SUPPORTED_ARCHITECTURES
from core.exceptions import ValidationException
from core.models import Severity

_HOSTNAME_PATTERN = re.compile(
    r"^[a-z0-9]([a-z0-9\-]*[a-z0-9])?(\.[a-z0-9]([a-z0-9\-]*[a-z0-9])?)*(:\d+)?$",
    re.IGNORECASE,
)
_REPOSITORY_PATTERN = re.compile(
    r"^[a-z0-9]+([\._\-][a-z0-9]+)*(\/[a-z0-9]+([\._\-][a-z0-9]+)*)*$",
    re.IGNORECASE,
)
_STREAM_PATTERN = re.compile(r"^v?\d+(\.\d+)*$", re.IGNORECASE)


def validate_registry(registry: str, field_name: str = "registry") -> str:
    """
    Validate a registry hostname.

    Args:
        registry: Registry hostname, optionally with a port
        field_name: Field name for error messages

    Returns:
        Normalized registry hostname

    Raises:
        ValidationException: If the registry is not a hostname

    Examples:
        >>> validate_registry("registry.access.redhat.com")
        'registry.access.redhat.com'
        >>> validate_registry("https://registry.access.redhat.com")
        ValidationException: ...
    """
    if not registry or not registry.strip():
        raise ValidationException("Registry cannot be empty", field_name)

    registry = registry.strip()
    if not _HOSTNAME_PATTERN.match(registry):
        raise ValidationException(f"Invalid registry hostname: {registry}", field_name)

    return registry


def validate_repository(repository: str, field_name: str = "repository") -> str:
    """
    Validate a repository path such as "ubi8/ubi".

    Args:
        repository: Repository path
        field_name: Field name for error messages

    Returns:
        Normalized repository path

    Raises:
        ValidationException: If the repository path is empty or malformed
    """
    if not repository or not repository.strip():
        raise ValidationException("Repository cannot be empty", field_name)

    repository = repository.strip().strip("/")

    # Tags and digests belong to the catalog, not the configuration
    if ":" in repository or "@" in repository:
        raise ValidationException(
            f"Repository must not include a tag or digest: {repository}",
            field_name,
        )

    if not _REPOSITORY_PATTERN.match(repository):
        raise ValidationException(f"Invalid repository path: {repository}", field_name)

    return repository


def validate_architecture(architecture: str, field_name: str = "architecture") -> str:
    """Validate an architecture against the set published by the catalog."""
    normalized = (architecture or "").strip().lower()
    if normalized not in SUPPORTED_ARCHITECTURES:
        raise ValidationException(
            f"Unsupported architecture '{architecture}' "
            f"(expected one of: {', '.join(SUPPORTED_ARCHITECTURES)})",
            field_name,
        )
    return normalized


def validate_stream(stream: str, field_name: str = "stream") -> str:
    """
    Validate a version stream.

    A stream is either "latest" or a dotted numeric prefix like "4.9".

    Raises:
        ValidationException: If the stream is neither
    """
    normalized = str(stream or "").strip()
    if normalized.lower() == LATEST_STREAM:
        return LATEST_STREAM
    if not _STREAM_PATTERN.match(normalized):
        raise ValidationException(
            f"Stream must be '{LATEST_STREAM}' or a dotted version prefix, got '{stream}'",
            field_name,
        )
    return normalized


def validate_page_size(page_size: int, max_size: int, field_name: str = "page_size") -> int:
    """
    Validate a catalog page size.

    Args:
        page_size: Requested page size
        max_size: Largest page the catalog accepts
        field_name: Field name for error messages

    Returns:
        Validated page size

    Raises:
        ValidationException: If page size is not in [1, max_size]
    """
    if not isinstance(page_size, int) or isinstance(page_size, bool):
        raise ValidationException(f"Page size must be an integer, got {page_size!r}", field_name)

    if page_size < 1 or page_size > max_size:
        raise ValidationException(
            f"Page size must be between 1 and {max_size}, got {page_size}",
            field_name,
        )

    return page_size


def validate_number(value, cast: type, field_name: str = "value", minimum: float = None):
    """
    Convert a configuration value to a number.

    Args:
        value: Raw value from the configuration
        cast: Target type, int or float
        field_name: Field name for error messages
        minimum: Smallest accepted value (optional)

    Returns:
        The converted number

    Raises:
        ValidationException: If the value is not numeric or below minimum

    Examples:
        >>> validate_number("30", float, "catalog.timeout")
        30.0
    """
    if isinstance(value, bool):
        raise ValidationException(f"Expected a number, got {value!r}", field_name)
    try:
        number = cast(value)
    except (TypeError, ValueError):
        raise ValidationException(f"Expected a number, got {value!r}", field_name) from None

    if minimum is not None and number < minimum:
        raise ValidationException(f"Must be >= {minimum}, got {number}", field_name)

    return number


def validate_severity_threshold(threshold: str, field_name: str = "severity_threshold") -> Severity:
    """Validate a notification severity threshold and return it as a Severity."""
    normalized = (threshold or "").strip().lower()
    for level in Severity:
        if level.value.lower() == normalized:
            return level
    raise ValidationException(
        f"Unknown severity '{threshold}' "
        f"(expected one of: {', '.join(Severity.ordered_levels())})",
        field_name,
    )


def validate_file_path(path: Path, must_exist: bool = True) -> Path:
    """
    Validate file path.

    Args:
        path: Path to validate
        must_exist: Whether file must already exist

    Returns:
        Validated Path object

    Raises:
        ValidationException: If path is invalid
    """
    if not path:
        raise ValidationException("File path cannot be empty", "path")

    if must_exist and not path.exists():
        raise ValidationException(f"File not found: {path}", "path")

    return path


__all__ = [
    "validate_registry",
    "validate_repository",
    "validate_architecture",
    "validate_stream",
    "validate_page_size",
    "validate_number",
    "validate_severity_threshold",
    "validate_file_path",
]
