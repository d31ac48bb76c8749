#!/usr/bin/env python3
"""
Main entry point for pyprovision - installs Python, clones an application
repository, provisions its environment and creates launchers.
"""

import asyncio
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from pyprovision.core import InstallationOrchestrator, ProcessExecutor, RuntimeDetector
from pyprovision.integrations import (
    AutoDecisionProvider,
    ConsoleDecisionProvider,
    Decision,
    LoggingProgressSink,
)
from pyprovision.utils import setup_root_logger
from config.settings import DEFAULT_CONFIG_PATH, Settings


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Install Python, clone an application and prepare it to run"
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to settings file (JSON format, default: {DEFAULT_CONFIG_PATH})"
    )

    parser.add_argument("--python-version", type=str, help="Python version to install")
    parser.add_argument("--install-path", type=str, help="Python installation directory")
    parser.add_argument(
        "--already-installed",
        action="store_true",
        help="Use the existing Python installation at --install-path"
    )
    parser.add_argument("--installer-url", type=str, help="Override the Python installer URL")
    parser.add_argument("--repo-url", type=str, help="Git repository to clone")
    parser.add_argument("--clone-path", type=str, help="Directory to clone the repository into")
    parser.add_argument("--entry-program", type=str, help="Program the launchers start")
    parser.add_argument("--manifest", type=str, help="Dependency manifest file name")
    parser.add_argument(
        "--fallback-package",
        action="append",
        dest="fallback_packages",
        help="Package to install when the repository has no manifest (repeatable)"
    )
    parser.add_argument(
        "--no-shortcut",
        action="store_true",
        help="Do not create a desktop shortcut"
    )

    parser.add_argument(
        "--save-config",
        action="store_true",
        help="Write the effective settings back to the settings file"
    )

    parser.add_argument(
        "--assume",
        choices=["proceed", "abort"],
        help="Answer questions automatically instead of prompting"
    )

    parser.add_argument(
        "--report",
        type=Path,
        help="Write the run report to this JSON file"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: from settings, INFO)"
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        help="Log file path (default: from settings)"
    )

    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args) -> Settings:
    """Apply command line overrides on top of the loaded settings."""
    if args.python_version:
        settings.runtime.version = args.python_version
    if args.install_path:
        settings.runtime.install_path = args.install_path
    if args.already_installed:
        settings.runtime.already_installed = True
    if args.installer_url:
        settings.runtime.installer_url = args.installer_url
    if args.repo_url:
        settings.repository.url = args.repo_url
    if args.clone_path:
        settings.repository.clone_path = args.clone_path
    if args.entry_program:
        settings.application.target_program = args.entry_program
    if args.manifest:
        settings.application.manifest_name = args.manifest
    if args.fallback_packages:
        settings.application.fallback_packages = list(args.fallback_packages)
    if args.no_shortcut:
        settings.application.create_desktop_shortcut = False
    # Overrides are assigned field by field, so validate the result as a whole.
    return Settings.model_validate(settings.model_dump())


async def auto_detect_runtime(settings: Settings) -> None:
    """Mark the runtime as installed when one already answers at the install path."""
    logger = logging.getLogger(__name__)
    if not settings.application.auto_detect_runtime or settings.runtime.already_installed:
        return

    detector = RuntimeDetector(ProcessExecutor())
    runtime = await detector.probe(settings.runtime.install_path)
    if runtime is not None:
        logger.info(f"Detected existing Python installation: {runtime}")
        settings.runtime.already_installed = True


def build_decisions(assume: Optional[str]):
    if assume == "proceed":
        return AutoDecisionProvider(preferences=[Decision.USE_EXISTING, Decision.PROCEED])
    if assume == "abort":
        return AutoDecisionProvider(preferences=[Decision.ABORT])
    return ConsoleDecisionProvider()


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)
    settings = Settings.load(args.config)

    log_file = args.log_file or settings.logging.file_path
    setup_root_logger(
        log_file,
        args.log_level or settings.logging.level,
        format_string=settings.logging.format,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count
    )
    logger = logging.getLogger(__name__)

    logger.info("Starting pyprovision")
    logger.info(f"Arguments: {vars(args)}")

    try:
        settings = apply_overrides(settings, args)
        await auto_detect_runtime(settings)

        if args.save_config:
            saved = settings.save(args.config)
            logger.info(f"Settings saved to {saved}")

        plan = settings.to_plan()
        orchestrator = InstallationOrchestrator.create(
            decisions=build_decisions(args.assume),
            progress=LoggingProgressSink()
        )
        report = await orchestrator.run(plan)

        if args.report:
            args.report.parent.mkdir(parents=True, exist_ok=True)
            args.report.write_text(report.model_dump_json(indent=2), encoding="utf-8")
            logger.info(f"Report saved to {args.report}")

        logger.info("=" * 60)
        logger.info("SUMMARY")
        logger.info("=" * 60)
        for stage in report.stages:
            status = "ok" if stage.success else "FAILED"
            logger.info(f"{stage.stage}: {status} ({len(stage.warnings)} warnings)")
        logger.info(report.summary())
        logger.info("=" * 60)

        return 0 if report.succeeded else 1

    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
