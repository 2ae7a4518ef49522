"""
Red Hat Container Catalog client.

Executes GraphQL queries against the catalog with bounded, exponential
backoff retries and returns domain models for repositories, image
listings and vulnerability lists.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Optional

import requests

from constants import (
    API_REQUEST_TIMEOUT,
    DEFAULT_BACKOFF_BASE_SECONDS,
    DEFAULT_CATALOG_ENDPOINT,
    DEFAULT_IMAGES_PAGE_SIZE,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_VULNERABILITIES_PAGE_SIZE,
    MAX_IMAGES_PAGE_SIZE,
    MAX_VULNERABILITIES_PAGE_SIZE,
)
from core.error_classification import ErrorClassifier
from core.exceptions import CatalogUnavailable, InvalidQuery, LookupMiss
from core.models import (
    CatalogImage,
    ImagePage,
    RepositoryRef,
    Severity,
    VulnerabilityRecord,
)
from integrations.catalog_queries import (
    FIND_IMAGE_VULNERABILITIES,
    FIND_REPOSITORIES,
    FIND_REPOSITORY_IMAGES,
)
from utils.validation import validate_page_size

logger = logging.getLogger(__name__)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a catalog ISO-8601 timestamp into an aware datetime."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparseable catalog timestamp: {value}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class CatalogClient:
    """
    Client for the Red Hat Container Catalog GraphQL API.

    Each query is attempted up to max_attempts times. Only transport
    failures, 5xx responses and undecodable bodies are retried; 4xx
    responses and GraphQL errors fail immediately with InvalidQuery.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_CATALOG_ENDPOINT,
        timeout: float = API_REQUEST_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_base: float = DEFAULT_BACKOFF_BASE_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize catalog client.

        Args:
            endpoint: GraphQL endpoint URL
            timeout: Per-request timeout in seconds
            max_attempts: Total attempts per query, first try included
            backoff_base: Delay before the second attempt, doubled thereafter
            session: Optional requests session (one is created if omitted)
        """
        self.endpoint = endpoint
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.backoff_base = backoff_base
        self.session = session or requests.Session()
        self.request_count = 0

    def find_repository(self, repository: str) -> RepositoryRef:
        """
        Look up a repository by path.

        Args:
            repository: Repository path (e.g., "ubi8/ubi")

        Returns:
            RepositoryRef for the first matching repository

        Raises:
            LookupMiss: If the catalog has no such repository
            CatalogUnavailable: If transient failures exhaust all attempts
            InvalidQuery: If the catalog rejects the query
        """
        data = self._execute(FIND_REPOSITORIES, {"repository": repository})
        matches = (data.get("find_repositories") or {}).get("data") or []

        if not matches:
            raise LookupMiss(repository, "repository not found in catalog")

        first = matches[0]
        return RepositoryRef(
            id=first.get("_id", ""),
            registry=first.get("registry", ""),
            repository=first.get("repository", repository),
        )

    def list_images(
        self,
        registry: str,
        repository: str,
        architecture: str,
        page: int = 0,
        page_size: int = DEFAULT_IMAGES_PAGE_SIZE,
    ) -> ImagePage:
        """
        List one page of builds for a repository.

        Callers drive pagination by requesting the next page while
        ImagePage.has_more is true.

        Args:
            registry: Registry hostname
            repository: Repository path
            architecture: Architecture filter
            page: Zero-based page number
            page_size: Builds per page (at most 500)

        Returns:
            ImagePage of CatalogImage entries
        """
        validate_page_size(page_size, MAX_IMAGES_PAGE_SIZE, "images_page_size")

        data = self._execute(
            FIND_REPOSITORY_IMAGES,
            {
                "registry": registry,
                "repository": repository,
                "page": page,
                "page_size": page_size,
                "architecture": architecture,
            },
        )
        result = data.get("find_repository_images_by_registry_path") or {}
        images = tuple(self._parse_image(item) for item in result.get("data") or [])

        logger.debug(
            f"Catalog listed {len(images)} images for {registry}/{repository} "
            f"({architecture}), page {page}"
        )

        return ImagePage(
            images=images,
            page=result.get("page", page),
            page_size=result.get("page_size", page_size),
            total=result.get("total", len(images)),
        )

    def list_vulnerabilities(
        self,
        build_id: str,
        page_size: int = DEFAULT_VULNERABILITIES_PAGE_SIZE,
    ) -> list[VulnerabilityRecord]:
        """
        Fetch every vulnerability record for a build.

        Pages are requested until the accumulated count reaches the total
        reported by the catalog; callers never see partial results.

        Args:
            build_id: Catalog build identifier (NOT the content digest)
            page_size: Records per page (at most 250)

        Returns:
            All vulnerability records of the build
        """
        validate_page_size(page_size, MAX_VULNERABILITIES_PAGE_SIZE, "vulnerabilities_page_size")

        records: list[VulnerabilityRecord] = []
        page = 0

        while True:
            data = self._execute(
                FIND_IMAGE_VULNERABILITIES,
                {"id": build_id, "page": page, "page_size": page_size},
            )
            result = data.get("find_image_vulnerabilities") or {}
            items = result.get("data") or []
            total = result.get("total") or 0

            records.extend(self._parse_vulnerability(item) for item in items)
            logger.debug(
                f"Vulnerability page {page} for {build_id}: {len(items)} records "
                f"({len(records)}/{total})"
            )

            if not items or len(records) >= total:
                break
            page += 1

        return records

    def _execute(self, query: str, variables: dict) -> dict:
        """
        Execute a GraphQL query with retries.

        Args:
            query: GraphQL query text
            variables: Query variables

        Returns:
            The 'data' object of the GraphQL response

        Raises:
            InvalidQuery: On 4xx responses or GraphQL errors (never retried)
            CatalogUnavailable: When all attempts fail transiently
        """
        payload = {"query": query, "variables": variables}
        last_error = "Unknown error"

        for attempt in range(1, self.max_attempts + 1):
            self.request_count += 1
            try:
                response = self.session.post(
                    self.endpoint,
                    json=payload,
                    headers={"Accept": "application/json"},
                    timeout=self.timeout,
                )
                classified = ErrorClassifier.classify_status(
                    response.status_code, response.text[:500]
                )
                if classified is None:
                    body = response.json()
                    errors = body.get("errors")
                    if errors:
                        classified = ErrorClassifier.classify_graphql_errors(errors)
                    else:
                        return body.get("data") or {}
            except (requests.RequestException, ValueError) as e:
                classified = ErrorClassifier.classify_exception(e)

            if not classified.retry_recommended:
                raise InvalidQuery(classified.original_message, classified.status_code)

            last_error = classified.original_message
            if attempt < self.max_attempts:
                delay = self.backoff_base * (2 ** (attempt - 1))
                logger.warning(
                    f"Catalog attempt {attempt}/{self.max_attempts} failed, "
                    f"retrying in {delay:.0f}s: {last_error}"
                )
                time.sleep(delay)

        raise CatalogUnavailable(self.max_attempts, last_error)

    @staticmethod
    def _parse_image(item: dict) -> CatalogImage:
        """Convert a catalog image entry into a CatalogImage."""
        tags: list[str] = []
        for repo in item.get("repositories") or []:
            for tag in repo.get("tags") or []:
                name = tag.get("name")
                if name and name not in tags:
                    tags.append(name)

        return CatalogImage(
            build_id=item.get("_id", ""),
            content_digest=item.get("docker_image_id"),
            architecture=item.get("architecture") or "",
            tags=tuple(tags),
            created_at=_parse_timestamp(item.get("creation_date")),
        )

    @staticmethod
    def _parse_vulnerability(item: dict) -> VulnerabilityRecord:
        """Convert a catalog vulnerability entry into a VulnerabilityRecord."""
        # affected_packages is frequently null upstream
        packages = tuple(
            pkg.get("name", "")
            for pkg in item.get("affected_packages") or []
            if pkg and pkg.get("name")
        )
        return VulnerabilityRecord(
            cve_id=item.get("cve_id", ""),
            severity=Severity.from_catalog(item.get("severity")),
            advisory_id=item.get("advisory_id") or "",
            affected_packages=packages,
            published_date=item.get("public_date"),
        )
