"""Tests for CLI argument parsing and command routing."""

import sys
import pytest
from pathlib import Path
from unittest.mock import MagicMock, patch

import cli
from cli import (
    main_check,
    main_dispatch,
    main_export,
    main_notify_test,
    main_run,
    parse_check_args,
    parse_run_args,
)
from core.models import (
    DeliveryOutcome,
    DeliveryStatus,
    RunStatus,
    UnitFailure,
)


@pytest.fixture
def config_file(tmp_path):
    """Minimal configuration file with one image."""
    path = tmp_path / "monitor.yaml"
    path.write_text(
        "storage:\n"
        f"  database_path: {tmp_path / 'vigil.db'}\n"
        "images:\n"
        "  - ubi8/ubi\n"
    )
    return path


class TestArgumentParsing:
    """Tests for subcommand argument parsers."""

    def test_run_defaults(self):
        """Test default config path and verbosity."""
        args = parse_run_args([])
        assert args.config == Path("monitor.yaml")
        assert args.verbose is False

    def test_check_defaults(self):
        """Test defaults of the check command."""
        args = parse_check_args(["ubi8/ubi"])

        assert args.repository == "ubi8/ubi"
        assert args.registry == "registry.access.redhat.com"
        assert args.arch == "amd64"
        assert args.stream == "latest"

    def test_check_options(self):
        """Test explicit check options."""
        args = parse_check_args(
            ["openshift4/ose-cli", "--arch", "arm64", "--stream", "4.9", "-c", "other.yaml", "-v"]
        )

        assert args.arch == "arm64"
        assert args.stream == "4.9"
        assert args.config == Path("other.yaml")
        assert args.verbose is True

    def test_check_requires_repository(self):
        """Test that the repository argument is mandatory."""
        with pytest.raises(SystemExit):
            parse_check_args([])


class TestDispatch:
    """Tests for main_dispatch routing."""

    def test_routes_subcommand(self):
        """Test that a known subcommand is popped and dispatched."""
        check = MagicMock()
        with patch.dict(cli.COMMANDS, {"check": check}), \
                patch.object(sys, "argv", ["vigil", "check", "ubi8/ubi"]):
            main_dispatch()
            assert sys.argv == ["vigil", "ubi8/ubi"]

        check.assert_called_once_with()

    def test_defaults_to_run(self):
        """Test that no subcommand runs the monitor."""
        with patch("cli.main_run") as mock_run, patch.object(sys, "argv", ["vigil", "-v"]):
            main_dispatch()

        mock_run.assert_called_once_with()


@patch("cli.RunCoordinator")
class TestMainRun:
    """Tests for the run command."""

    def test_partial_run_exits_zero(self, mock_coordinator, config_file):
        """Test that a partially successful run exits 0."""
        mock_coordinator.return_value.run_configured.return_value = MagicMock(status=RunStatus.PARTIAL)

        with pytest.raises(SystemExit) as exc_info:
            main_run(["-c", str(config_file)])

        assert exc_info.value.code == 0
        kwargs = mock_coordinator.call_args.kwargs
        assert kwargs["settings"].notifications_enabled is True

    def test_failed_run_exits_one(self, mock_coordinator, config_file):
        """Test that a failed run exits 1."""
        mock_coordinator.return_value.run_configured.return_value = MagicMock(status=RunStatus.FAILED)

        with pytest.raises(SystemExit) as exc_info:
            main_run(["-c", str(config_file)])

        assert exc_info.value.code == 1

    def test_configured_images_synced(self, mock_coordinator, config_file):
        """Test that the YAML images are written to the store before the run."""
        mock_coordinator.return_value.run_configured.return_value = MagicMock(status=RunStatus.COMPLETED)

        with pytest.raises(SystemExit):
            main_run(["-c", str(config_file)])

        store = mock_coordinator.call_args.kwargs["store"]
        assert [c.repository for c in store.read_configured_coordinates()] == ["ubi8/ubi"]

    def test_missing_config_exits_one(self, mock_coordinator, tmp_path):
        """Test that a missing configuration file exits 1."""
        with pytest.raises(SystemExit) as exc_info:
            main_run(["-c", str(tmp_path / "missing.yaml")])

        assert exc_info.value.code == 1
        mock_coordinator.assert_not_called()


class TestMainCheck:
    """Tests for the check command."""

    def test_failure_exits_one(self, tmp_path, coordinate):
        """Test that a failed unit exits 1 without a config file."""
        pipeline = MagicMock()
        pipeline.run_unit.return_value = UnitFailure(coordinate, "CatalogUnavailable", "after 3 attempts")

        with patch("cli.build_pipeline", return_value=pipeline) as mock_build:
            with pytest.raises(SystemExit) as exc_info:
                main_check(["ubi8/ubi", "-c", str(tmp_path / "missing.yaml")])

        assert exc_info.value.code == 1
        assert mock_build.call_args.kwargs["store"] is None
        assert pipeline.run_unit.call_args.args[0] == coordinate

    def test_success(self, tmp_path, mock_catalog):
        """Test that a successful check returns normally."""
        with patch("cli.build_catalog", return_value=mock_catalog):
            main_check(["ubi8/ubi", "-c", str(tmp_path / "missing.yaml")])

        mock_catalog.list_vulnerabilities.assert_called_once()

    def test_invalid_architecture(self, tmp_path):
        """Test that bad input exits 1 before any catalog call."""
        with patch("cli.build_pipeline") as mock_build:
            with pytest.raises(SystemExit) as exc_info:
                main_check(["ubi8/ubi", "--arch", "mips", "-c", str(tmp_path / "missing.yaml")])

        assert exc_info.value.code == 1
        mock_build.assert_not_called()


class TestOtherCommands:
    """Tests for export and notify-test."""

    def test_export(self, config_file, tmp_path):
        """Test that export writes to the requested path."""
        output = tmp_path / "report.xlsx"
        with patch("cli.WorkbookExporter") as mock_exporter:
            main_export(["-c", str(config_file), "-o", str(output)])

        assert mock_exporter.return_value.generate.call_args.args[1] == output

    def test_notify_test_without_channels(self, config_file):
        """Test that notify-test fails when nothing was delivered."""
        with pytest.raises(SystemExit) as exc_info:
            main_notify_test(["-c", str(config_file)])

        assert exc_info.value.code == 1

    def test_notify_test_success(self, config_file):
        """Test that a delivered test notification returns normally."""
        service = MagicMock()
        service.send_test.return_value = DeliveryOutcome(DeliveryStatus.SUCCESS, channels=("slack",))

        with patch("cli.NotificationService.from_settings", return_value=service):
            main_notify_test(["-c", str(config_file)])

        service.send_test.assert_called_once()
