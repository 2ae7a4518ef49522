"""Tests for input validation utilities."""

import pytest

from core.exceptions import ValidationException
from core.models import Severity
from utils.validation import (
    validate_architecture,
    validate_file_path,
    validate_number,
    validate_page_size,
    validate_registry,
    validate_repository,
    validate_severity_threshold,
    validate_stream,
)


class TestValidateRegistry:
    """Tests for registry hostname validation."""

    def test_valid_registry(self):
        """Test a plain hostname."""
        assert validate_registry("registry.access.redhat.com") == "registry.access.redhat.com"

    def test_registry_with_port(self):
        """Test a hostname with a port."""
        assert validate_registry("localhost:5000") == "localhost:5000"

    def test_strips_whitespace(self):
        """Test that surrounding whitespace is removed."""
        assert validate_registry("  quay.io ") == "quay.io"

    def test_empty_registry(self):
        """Test empty registry."""
        with pytest.raises(ValidationException) as exc:
            validate_registry("   ")
        assert "cannot be empty" in str(exc.value)

    def test_url_is_rejected(self):
        """Test that a scheme is not accepted."""
        with pytest.raises(ValidationException):
            validate_registry("https://registry.access.redhat.com")


class TestValidateRepository:
    """Tests for repository path validation."""

    def test_valid_repository(self):
        """Test a two-segment path."""
        assert validate_repository("ubi8/ubi-minimal") == "ubi8/ubi-minimal"

    def test_strips_slashes(self):
        """Test that leading and trailing slashes are removed."""
        assert validate_repository("/rhel9/nginx-122/") == "rhel9/nginx-122"

    def test_tag_rejected(self):
        """Test that a tagged reference is rejected."""
        with pytest.raises(ValidationException) as exc:
            validate_repository("ubi8/ubi:8.10")
        assert "tag or digest" in str(exc.value)

    def test_digest_rejected(self):
        """Test that a digest reference is rejected."""
        with pytest.raises(ValidationException):
            validate_repository("ubi8/ubi@sha256:abc")

    def test_invalid_characters(self):
        """Test paths with shell metacharacters."""
        for repository in ["ubi8/ubi;rm", "ubi8/$ubi", "ubi8//ubi"]:
            with pytest.raises(ValidationException):
                validate_repository(repository)


class TestValidateArchitecture:
    """Tests for architecture validation."""

    def test_normalizes_case(self):
        """Test that architectures are lower-cased."""
        assert validate_architecture("ARM64") == "arm64"

    def test_unsupported(self):
        """Test that unknown architectures are rejected."""
        with pytest.raises(ValidationException) as exc:
            validate_architecture("x86_64")
        assert "amd64" in str(exc.value)


class TestValidateStream:
    """Tests for stream validation."""

    def test_latest(self):
        """Test the latest sentinel, case-insensitively."""
        assert validate_stream("Latest") == "latest"

    def test_version_prefix(self):
        """Test dotted numeric prefixes."""
        assert validate_stream("4.10") == "4.10"
        assert validate_stream("9") == "9"

    def test_invalid_stream(self):
        """Test that free text is rejected."""
        with pytest.raises(ValidationException):
            validate_stream("stable")


class TestValidatePageSize:
    """Tests for page size validation."""

    def test_within_bounds(self):
        """Test accepted values."""
        assert validate_page_size(1, 500) == 1
        assert validate_page_size(500, 500) == 500

    def test_out_of_bounds(self):
        """Test zero and oversized pages."""
        with pytest.raises(ValidationException):
            validate_page_size(0, 500)
        with pytest.raises(ValidationException) as exc:
            validate_page_size(251, 250, "vulnerabilities_page_size")
        assert "vulnerabilities_page_size" in str(exc.value)

    def test_non_integer(self):
        """Test that strings and booleans are rejected."""
        with pytest.raises(ValidationException):
            validate_page_size("100", 500)
        with pytest.raises(ValidationException):
            validate_page_size(True, 500)


class TestValidateNumber:
    """Tests for numeric configuration values."""

    def test_converts_strings(self):
        """Test that numeric strings from YAML are converted."""
        assert validate_number("30", float, "catalog.timeout") == 30.0
        assert validate_number(3, int, "catalog.max_attempts", minimum=1) == 3

    @pytest.mark.parametrize("value", ["three", None, True, [1]])
    def test_non_numeric(self, value):
        """Test that non-numeric values name the field."""
        with pytest.raises(ValidationException) as exc_info:
            validate_number(value, int, "catalog.max_attempts")
        assert exc_info.value.field == "catalog.max_attempts"

    def test_below_minimum(self):
        """Test the lower bound."""
        with pytest.raises(ValidationException, match="Must be >= 1"):
            validate_number(0, int, "catalog.max_attempts", minimum=1)

class TestValidateSeverityThreshold:
    """Tests for severity threshold validation."""

    def test_case_insensitive(self):
        """Test that thresholds are matched ignoring case."""
        assert validate_severity_threshold("critical") == Severity.CRITICAL
        assert validate_severity_threshold(" Important ") == Severity.IMPORTANT

    def test_unknown(self):
        """Test unknown thresholds."""
        with pytest.raises(ValidationException) as exc:
            validate_severity_threshold("High")
        assert "Critical" in str(exc.value)


class TestValidateFilePath:
    """Tests for file path validation."""

    def test_valid_existing_file(self, tmp_path):
        """Test valid existing file."""
        test_file = tmp_path / "monitor.yaml"
        test_file.write_text("images: []")

        assert validate_file_path(test_file) == test_file

    def test_nonexistent_file(self, tmp_path):
        """Test non-existent file when must_exist=True."""
        with pytest.raises(ValidationException) as exc:
            validate_file_path(tmp_path / "missing.yaml")
        assert "not found" in str(exc.value)

    def test_nonexistent_file_allowed(self, tmp_path):
        """Test non-existent file when must_exist=False."""
        path = tmp_path / "report.xlsx"
        assert validate_file_path(path, must_exist=False) == path

    def test_empty_path(self):
        """Test empty path."""
        with pytest.raises(ValidationException):
            validate_file_path(None)
