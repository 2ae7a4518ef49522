"""
Error classification for catalog retry logic.

Categorizes catalog responses and transport exceptions into classes that
determine whether another attempt is worthwhile.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import requests


class ErrorCategory(str, Enum):
    """
    Error categories that determine retry strategy.

    Transport failures and 5xx responses are retried. A body that is not JSON
    is retried the same way, even on HTTP 200.
    """
    TRANSIENT_NETWORK = "transient_network"
    """Timeouts, connection resets, DNS hiccups - retry with backoff"""

    SERVER_ERROR = "server_error"
    """5xx or unexpected non-200 responses - retry with backoff"""

    MALFORMED_RESPONSE = "malformed_response"
    """Body was not valid JSON (even on HTTP 200) - retry with backoff"""

    CLIENT_ERROR = "client_error"
    """4xx responses - deterministic, don't retry"""

    QUERY_ERROR = "query_error"
    """GraphQL 'errors' in an otherwise successful response - don't retry"""


@dataclass(frozen=True)
class ClassifiedError:
    """
    An error with its classification and metadata.
    """
    category: ErrorCategory
    original_message: str
    retry_recommended: bool
    status_code: Optional[int] = None


class ErrorClassifier:
    """
    Classifies catalog failures into categories.
    """

    RETRYABLE_CATEGORIES = frozenset({
        ErrorCategory.TRANSIENT_NETWORK,
        ErrorCategory.SERVER_ERROR,
        ErrorCategory.MALFORMED_RESPONSE,
    })

    @classmethod
    def _build(
        cls,
        category: ErrorCategory,
        message: str,
        status_code: Optional[int] = None,
    ) -> ClassifiedError:
        return ClassifiedError(
            category=category,
            original_message=message,
            retry_recommended=category in cls.RETRYABLE_CATEGORIES,
            status_code=status_code,
        )

    @classmethod
    def classify_status(cls, status_code: int, body: str = "") -> Optional[ClassifiedError]:
        """
        Classify an HTTP status code.

        Args:
            status_code: HTTP status code from the catalog
            body: Response body, kept for error messages

        Returns:
            ClassifiedError, or None for a 200 response
        """
        if status_code == 200:
            return None
        if status_code >= 500:
            return cls._build(
                ErrorCategory.SERVER_ERROR,
                f"Server error ({status_code}): {body}",
                status_code,
            )
        if 400 <= status_code < 500:
            return cls._build(
                ErrorCategory.CLIENT_ERROR,
                f"Client error ({status_code}): {body}",
                status_code,
            )
        return cls._build(
            ErrorCategory.SERVER_ERROR,
            f"Unexpected status {status_code}: {body}",
            status_code,
        )

    @classmethod
    def classify_exception(cls, error: Exception) -> ClassifiedError:
        """
        Classify an exception raised while talking to the catalog.

        Args:
            error: Exception from requests or from response decoding

        Returns:
            ClassifiedError with retry recommendation
        """
        if isinstance(error, (json.JSONDecodeError, requests.exceptions.JSONDecodeError)):
            return cls._build(ErrorCategory.MALFORMED_RESPONSE, f"Invalid JSON response: {error}")

        if isinstance(error, requests.HTTPError) and error.response is not None:
            classified = cls.classify_status(error.response.status_code, error.response.text)
            if classified:
                return classified

        # Timeouts, connection errors and anything else at the transport layer
        return cls._build(ErrorCategory.TRANSIENT_NETWORK, str(error) or type(error).__name__)

    @classmethod
    def classify_graphql_errors(cls, errors: list) -> ClassifiedError:
        """
        Classify the 'errors' array of a GraphQL response.

        Args:
            errors: List of GraphQL error objects

        Returns:
            ClassifiedError in the QUERY_ERROR category
        """
        messages = ", ".join(
            str(err.get("message", err)) if isinstance(err, dict) else str(err)
            for err in errors
        )
        return cls._build(ErrorCategory.QUERY_ERROR, f"GraphQL errors: {messages}")
