"""
Command-line interface for Vigil - Container Image Health Monitor.

Subcommands:
- run: resolve, score and persist every configured image, then alert
- check: run the pipeline for one image without persisting or alerting
- export: write the stored tables to an Excel workbook
- notify-test: send a synthetic alert through the configured channels
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from constants import DEFAULT_ARCHITECTURE, DEFAULT_REGISTRY, LATEST_STREAM
from core.config import MonitorConfig
from core.coordinator import RunCoordinator
from core.exceptions import VigilException
from core.models import DeliveryStatus, ImageCoordinate, RunStatus, UnitResult
from core.notification_service import NotificationService
from core.pipeline import PipelineOrchestrator
from integrations.catalog_client import CatalogClient
from outputs.xlsx_generator import WorkbookExporter
from storage.sqlite_store import SQLiteStore
from utils.logging_helpers import log_error_section
from utils.validation import (
    validate_architecture,
    validate_registry,
    validate_repository,
    validate_stream,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("monitor.yaml")


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )


def _base_parser(prog: str, description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description=description)
    parser.add_argument("-c", "--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Configuration file.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging.")
    return parser


def _load_config(path: Path) -> MonitorConfig:
    """Load configuration or exit with status 1."""
    try:
        return MonitorConfig.load_from_file(path)
    except VigilException as e:
        log_error_section(
            "Configuration could not be loaded.",
            [str(e), "Pass -c/--config or create monitor.yaml from monitor.example.yaml."],
            logger=logger,
        )
        sys.exit(1)


def build_catalog(config: MonitorConfig) -> CatalogClient:
    settings = config.catalog
    return CatalogClient(
        endpoint=settings.endpoint,
        timeout=settings.timeout,
        max_attempts=settings.max_attempts,
        backoff_base=settings.backoff_base,
    )


def build_pipeline(config: MonitorConfig, store: Optional[SQLiteStore]) -> PipelineOrchestrator:
    return PipelineOrchestrator(
        catalog=build_catalog(config),
        store=store,
        images_page_size=config.catalog.images_page_size,
        vulnerabilities_page_size=config.catalog.vulnerabilities_page_size,
    )


def parse_run_args(args: Optional[list[str]] = None) -> argparse.Namespace:
    parser = _base_parser("vigil run", "Check every configured image and alert on health changes.")
    return parser.parse_args(args)


def main_run(args: Optional[list[str]] = None):
    """Run command entry point."""
    args = parse_run_args(args)
    setup_logging(args.verbose)

    config = _load_config(args.config)

    try:
        store = SQLiteStore(config.storage.database_path)
        store.sync_configured_images(config.images)
    except VigilException as e:
        log_error_section("Store could not be initialized.", [str(e)], logger=logger)
        sys.exit(1)

    coordinator = RunCoordinator(
        pipeline=build_pipeline(config, store),
        store=store,
        notification_service=NotificationService.from_settings(config.notifications),
        settings=config.run_settings(),
    )
    summary = coordinator.run_configured()

    sys.exit(1 if summary.status == RunStatus.FAILED else 0)


def parse_check_args(args: Optional[list[str]] = None) -> argparse.Namespace:
    parser = _base_parser("vigil check", "Resolve and score one image without persisting results.")
    parser.add_argument("repository", help="Repository path (e.g., ubi8/ubi).")
    parser.add_argument("--registry", default=DEFAULT_REGISTRY, help="Registry hostname.")
    parser.add_argument("--arch", default=DEFAULT_ARCHITECTURE, help="Architecture.")
    parser.add_argument("--stream", default=LATEST_STREAM, help="Version stream (e.g., 4.9).")
    return parser.parse_args(args)


def main_check(args: Optional[list[str]] = None):
    """Check command entry point."""
    args = parse_check_args(args)
    setup_logging(args.verbose)

    if args.config.exists():
        config = _load_config(args.config)
    else:
        config = MonitorConfig()

    try:
        coordinate = ImageCoordinate(
            registry=validate_registry(args.registry),
            repository=validate_repository(args.repository),
            architecture=validate_architecture(args.arch),
            stream=validate_stream(args.stream),
        )
    except VigilException as e:
        logger.error(str(e))
        sys.exit(1)

    outcome = build_pipeline(config, store=None).run_unit(coordinate)

    if not isinstance(outcome, UnitResult):
        logger.error(f"{coordinate}: {outcome.error_type}: {outcome.error_message}")
        sys.exit(1)

    counts = outcome.snapshot.severity_counts
    logger.info(f"Image:   {coordinate}")
    logger.info(f"Version: {outcome.build.display_version} (build {outcome.build.build_id})")
    logger.info(f"Health:  {outcome.snapshot.score} ({outcome.snapshot.status.value})")
    logger.info(
        f"CVEs:    {len(outcome.records)} total | critical {counts.critical} | "
        f"important {counts.important} | moderate {counts.moderate} | low {counts.low}"
    )


def main_export(args: Optional[list[str]] = None):
    """Export command entry point."""
    parser = _base_parser("vigil export", "Export stored monitoring data to an Excel workbook.")
    parser.add_argument("-o", "--output", type=Path, default=Path("vigil-report.xlsx"), help="Output XLSX file.")
    args = parser.parse_args(args)
    setup_logging(args.verbose)

    config = _load_config(args.config)

    try:
        WorkbookExporter().generate(SQLiteStore(config.storage.database_path), args.output)
    except VigilException as e:
        logger.error(f"Export failed: {e}")
        sys.exit(1)


def main_notify_test(args: Optional[list[str]] = None):
    """Notify-test command entry point."""
    parser = _base_parser("vigil notify-test", "Send a test notification through configured channels.")
    args = parser.parse_args(args)
    setup_logging(args.verbose)

    config = _load_config(args.config)
    outcome = NotificationService.from_settings(config.notifications).send_test()

    if outcome.status != DeliveryStatus.SUCCESS:
        logger.error(f"Test notification {outcome.status.value}: {outcome.error_message or 'no details'}")
        sys.exit(1)

    logger.info(f"Test notification delivered via {', '.join(outcome.channels)}")


COMMANDS = {
    "run": main_run,
    "check": main_check,
    "export": main_export,
    "notify-test": main_notify_test,
}


def main_dispatch():
    """Main entry point with subcommand routing."""
    if len(sys.argv) > 1 and sys.argv[1] in COMMANDS:
        command = sys.argv.pop(1)
        COMMANDS[command]()
    else:
        main_run()


if __name__ == "__main__":
    main_dispatch()
