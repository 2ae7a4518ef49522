"""
Monitor configuration.

Loads the YAML configuration file into an immutable MonitorConfig tree.
Secrets can be supplied through environment variables, which take
precedence over values in the file.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from constants import (
    API_REQUEST_TIMEOUT,
    DEFAULT_ARCHITECTURE,
    DEFAULT_BACKOFF_BASE_SECONDS,
    DEFAULT_CATALOG_ENDPOINT,
    DEFAULT_DATABASE_PATH,
    DEFAULT_EMAIL_FROM_NAME,
    DEFAULT_IMAGES_PAGE_SIZE,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_REGISTRY,
    DEFAULT_SEVERITY_THRESHOLD,
    DEFAULT_VULNERABILITIES_PAGE_SIZE,
    LATEST_STREAM,
    MAX_IMAGES_PAGE_SIZE,
    MAX_VULNERABILITIES_PAGE_SIZE,
)
from core.exceptions import ConfigurationException, ValidationException
from core.models import ImageCoordinate, Severity
from utils.validation import (
    validate_architecture,
    validate_number,
    validate_page_size,
    validate_registry,
    validate_repository,
    validate_severity_threshold,
    validate_stream,
)

logger = logging.getLogger(__name__)

ENV_SLACK_WEBHOOK_URL = "VIGIL_SLACK_WEBHOOK_URL"
ENV_SMTP_PASSWORD = "VIGIL_SMTP_PASSWORD"
ENV_CATALOG_ENDPOINT = "VIGIL_CATALOG_ENDPOINT"


@dataclass(frozen=True)
class CatalogSettings:
    """Connection and paging settings for the catalog client."""

    endpoint: str = DEFAULT_CATALOG_ENDPOINT
    timeout: float = API_REQUEST_TIMEOUT
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff_base: float = DEFAULT_BACKOFF_BASE_SECONDS
    images_page_size: int = DEFAULT_IMAGES_PAGE_SIZE
    vulnerabilities_page_size: int = DEFAULT_VULNERABILITIES_PAGE_SIZE


@dataclass(frozen=True)
class EmailSettings:
    """SMTP delivery settings."""

    enabled: bool = False
    recipients: tuple[str, ...] = ()
    from_name: str = DEFAULT_EMAIL_FROM_NAME
    from_address: str = ""
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    use_tls: bool = True

    @property
    def is_usable(self) -> bool:
        return self.enabled and bool(self.recipients)


@dataclass(frozen=True)
class SlackSettings:
    """Slack incoming webhook settings."""

    enabled: bool = False
    webhook_url: Optional[str] = None
    mention_users: tuple[str, ...] = ()

    @property
    def is_usable(self) -> bool:
        return self.enabled and bool(self.webhook_url)


@dataclass(frozen=True)
class NotificationSettings:
    """Alert filtering and channel settings."""

    enabled: bool = True
    severity_threshold: Severity = Severity(DEFAULT_SEVERITY_THRESHOLD)
    notify_only_on_status_change: bool = True
    include_detailed_package_list: bool = False
    email: EmailSettings = field(default_factory=EmailSettings)
    slack: SlackSettings = field(default_factory=SlackSettings)


@dataclass(frozen=True)
class StorageSettings:
    """Location of the SQLite store."""

    database_path: Path = Path(DEFAULT_DATABASE_PATH)


@dataclass(frozen=True)
class ImageEntry:
    """
    One configured repository.

    An entry fans out to one ImageCoordinate per (architecture, stream).
    """

    repository: str
    registry: str = DEFAULT_REGISTRY
    architectures: tuple[str, ...] = (DEFAULT_ARCHITECTURE,)
    streams: tuple[str, ...] = (LATEST_STREAM,)
    enabled: bool = True
    notes: str = ""

    def coordinates(self) -> list[ImageCoordinate]:
        """Expand the entry into monitored units."""
        return [
            ImageCoordinate(
                registry=self.registry,
                repository=self.repository,
                architecture=architecture,
                stream=stream,
            )
            for architecture in self.architectures
            for stream in self.streams
        ]


@dataclass(frozen=True)
class RunSettings:
    """Settings handed to the run coordinator at construction time."""

    notifications_enabled: bool = True


@dataclass(frozen=True)
class MonitorConfig:
    """Complete monitor configuration."""

    catalog: CatalogSettings = field(default_factory=CatalogSettings)
    notifications: NotificationSettings = field(default_factory=NotificationSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    images: tuple[ImageEntry, ...] = ()

    def enabled_coordinates(self) -> list[ImageCoordinate]:
        """Coordinates of all enabled entries, without duplicates, in file order."""
        seen: dict[ImageCoordinate, None] = {}
        for entry in self.images:
            if not entry.enabled:
                continue
            for coordinate in entry.coordinates():
                seen.setdefault(coordinate, None)
        return list(seen)

    def run_settings(self) -> RunSettings:
        return RunSettings(notifications_enabled=self.notifications.enabled)

    @classmethod
    def load_from_file(
        cls,
        config_path: Path,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "MonitorConfig":
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to YAML configuration file
            environ: Environment used for secret overrides (default: os.environ)

        Returns:
            MonitorConfig instance

        Raises:
            ConfigurationException: If the file is missing, unparseable or invalid
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigurationException(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationException(f"Failed to parse configuration YAML: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationException("Configuration must be a YAML dictionary")

        config = cls.from_dict(data, environ)
        logger.debug(
            f"Loaded configuration from {config_path}: {len(config.images)} image entries"
        )
        return config

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        environ: Optional[Mapping[str, str]] = None,
    ) -> "MonitorConfig":
        """
        Build and validate configuration from a parsed dictionary.

        Raises:
            ConfigurationException: If any value fails validation
        """
        env = os.environ if environ is None else environ

        try:
            return cls(
                catalog=_parse_catalog(_section(data, "catalog"), env),
                notifications=_parse_notifications(_section(data, "notifications"), env),
                storage=_parse_storage(_section(data, "storage")),
                images=tuple(
                    _parse_image_entry(item, index)
                    for index, item in enumerate(data.get("images") or [])
                ),
            )
        except ValidationException as e:
            raise ConfigurationException(str(e)) from e


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationException(f"'{name}' must be a mapping")
    return value


def _as_tuple(value: Any) -> tuple:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return (value,)


def _parse_catalog(data: Mapping[str, Any], env: Mapping[str, str]) -> CatalogSettings:
    endpoint = env.get(ENV_CATALOG_ENDPOINT) or data.get("endpoint", DEFAULT_CATALOG_ENDPOINT)

    max_attempts = validate_number(
        data.get("max_attempts", DEFAULT_MAX_ATTEMPTS), int, "catalog.max_attempts", minimum=1
    )

    return CatalogSettings(
        endpoint=endpoint,
        timeout=validate_number(
            data.get("timeout", API_REQUEST_TIMEOUT), float, "catalog.timeout", minimum=0
        ),
        max_attempts=max_attempts,
        backoff_base=validate_number(
            data.get("backoff_base", DEFAULT_BACKOFF_BASE_SECONDS), float, "catalog.backoff_base", minimum=0
        ),
        images_page_size=validate_page_size(
            data.get("images_page_size", DEFAULT_IMAGES_PAGE_SIZE),
            MAX_IMAGES_PAGE_SIZE,
            "catalog.images_page_size",
        ),
        vulnerabilities_page_size=validate_page_size(
            data.get("vulnerabilities_page_size", DEFAULT_VULNERABILITIES_PAGE_SIZE),
            MAX_VULNERABILITIES_PAGE_SIZE,
            "catalog.vulnerabilities_page_size",
        ),
    )


def _parse_notifications(
    data: Mapping[str, Any],
    env: Mapping[str, str],
) -> NotificationSettings:
    email_data = _section(data, "email")
    slack_data = _section(data, "slack")

    email = EmailSettings(
        enabled=bool(email_data.get("enabled", False)),
        recipients=tuple(str(r).strip() for r in _as_tuple(email_data.get("recipients")) if r),
        from_name=email_data.get("from_name", DEFAULT_EMAIL_FROM_NAME),
        from_address=email_data.get("from_address", ""),
        smtp_host=email_data.get("smtp_host", "localhost"),
        smtp_port=validate_number(
            email_data.get("smtp_port", 587), int, "notifications.email.smtp_port", minimum=1
        ),
        smtp_username=email_data.get("smtp_username"),
        smtp_password=env.get(ENV_SMTP_PASSWORD) or email_data.get("smtp_password"),
        use_tls=bool(email_data.get("use_tls", True)),
    )
    if email.enabled and not email.from_address:
        raise ConfigurationException("notifications.email.from_address is required when email is enabled")

    slack = SlackSettings(
        enabled=bool(slack_data.get("enabled", False)),
        webhook_url=env.get(ENV_SLACK_WEBHOOK_URL) or slack_data.get("webhook_url"),
        mention_users=tuple(str(u) for u in _as_tuple(slack_data.get("mention_users"))),
    )

    return NotificationSettings(
        enabled=bool(data.get("enabled", True)),
        severity_threshold=validate_severity_threshold(
            str(data.get("severity_threshold", DEFAULT_SEVERITY_THRESHOLD)),
            "notifications.severity_threshold",
        ),
        notify_only_on_status_change=bool(data.get("notify_only_on_status_change", True)),
        include_detailed_package_list=bool(data.get("include_detailed_package_list", False)),
        email=email,
        slack=slack,
    )


def _parse_storage(data: Mapping[str, Any]) -> StorageSettings:
    return StorageSettings(
        database_path=Path(data.get("database_path", DEFAULT_DATABASE_PATH)),
    )


def _parse_image_entry(item: Any, index: int) -> ImageEntry:
    if isinstance(item, str):
        item = {"repository": item}
    if not isinstance(item, dict):
        raise ConfigurationException(f"images[{index}] must be a mapping or a repository string")

    prefix = f"images[{index}]"

    streams = []
    for stream in _as_tuple(item.get("streams", LATEST_STREAM)):
        # YAML reads an unquoted 8.10 as the float 8.1
        if isinstance(stream, float):
            raise ConfigurationException(
                f"{prefix}.streams: quote version streams (got {stream!r})"
            )
        streams.append(validate_stream(str(stream), f"{prefix}.streams"))

    architectures = [
        validate_architecture(str(arch), f"{prefix}.architectures")
        for arch in _as_tuple(item.get("architectures", DEFAULT_ARCHITECTURE))
    ]

    if not streams:
        raise ConfigurationException(f"{prefix}.streams must not be empty")
    if not architectures:
        raise ConfigurationException(f"{prefix}.architectures must not be empty")

    return ImageEntry(
        repository=validate_repository(item.get("repository", ""), f"{prefix}.repository"),
        registry=validate_registry(item.get("registry", DEFAULT_REGISTRY), f"{prefix}.registry"),
        architectures=tuple(dict.fromkeys(architectures)),
        streams=tuple(dict.fromkeys(streams)),
        enabled=bool(item.get("enabled", True)),
        notes=str(item.get("notes") or ""),
    )
