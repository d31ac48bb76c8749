"""
Runtime installation: download the official installer, run it silently and
verify the result.
"""

import logging
import tempfile
from pathlib import Path
from typing import Optional

from ..integrations.decisions import (
    Decision,
    DecisionCallback,
    EXISTING_RUNTIME_OPTIONS,
    PROCEED_OR_ABORT,
    request_decision,
)
from ..integrations.progress import NullProgressSink, ProgressSink
from ..models.installation import FailureKind, StageResult
from ..models.plan import InstallPlan
from ..models.runtime import DetectedRuntime
from .downloader import Downloader
from .errors import DownloadError, ElevationRefusedError, ExecError
from .process_executor import ProcessExecutor
from .runtime_detector import RuntimeDetector

STAGE_NAME = "runtime"

# Windows Installer: another version of this product is already installed.
ALREADY_INSTALLED_EXIT_CODE = 1638

KNOWN_EXIT_CODES = {
    1602: "User cancelled installation",
    1603: "Fatal error during installation",
    1638: "Another version already installed",
    3010: "Success, restart required",
}


class RuntimeInstaller:
    """Installs the Python runtime, or confirms an existing one."""

    def __init__(self,
                 downloader: Downloader,
                 executor: ProcessExecutor,
                 detector: RuntimeDetector,
                 decisions: DecisionCallback,
                 progress: Optional[ProgressSink] = None,
                 temp_dir: Optional[Path] = None):
        """
        Initialize the runtime installer.

        Args:
            downloader: Fetches the installer
            executor: Runs the installer
            detector: Verifies the runtime before and after installing
            decisions: Asked when the situation is ambiguous
            progress: Receives progress milestones
            temp_dir: Where the installer is downloaded (system temp if None)
        """
        self.logger = logging.getLogger(__name__)
        self.downloader = downloader
        self.executor = executor
        self.detector = detector
        self.decisions = decisions
        self.progress = progress or NullProgressSink()
        self.temp_dir = Path(temp_dir) if temp_dir else Path(tempfile.gettempdir())

    def installer_args(self, plan: InstallPlan) -> list:
        return [
            "/quiet",
            "InstallAllUsers=1",
            f"PrependPath={1 if plan.register_on_path else 0}",
            f"TargetDir={plan.runtime_path}",
            "SimpleInstall=1",
        ]

    async def install(self, plan: InstallPlan) -> StageResult:
        """
        Make sure a runtime is available for the plan.

        Returns:
            Stage result whose value is the DetectedRuntime (or None when the
            user chose to proceed without a verified runtime)
        """
        result = StageResult(stage=STAGE_NAME)
        self.progress.report(STAGE_NAME, 0, "Checking Python runtime")

        if plan.already_installed:
            return await self._verify_existing(plan, result)

        if not plan.runtime_path.strip():
            return result.fail(FailureKind.PREREQUISITE_MISSING,
                               "Please specify a Python installation path")

        installer_path = self.temp_dir / f"python-{plan.runtime_version}-installer.exe"
        try:
            return await self._download_and_install(plan, installer_path, result)
        finally:
            self._remove_installer(installer_path)

    async def _verify_existing(self, plan: InstallPlan, result: StageResult) -> StageResult:
        result.note("Skipping Python installation - using existing installation", self.logger)

        runtime = await self.detector.probe(plan.runtime_path)
        if runtime is not None:
            result.note(f"Verified existing Python: {runtime}", self.logger)
            self._check_version(plan, runtime, result)
            self.progress.report(STAGE_NAME, 100, f"Using existing Python {runtime.version}")
            return result.succeed(runtime)

        result.note("Could not verify existing Python installation", self.logger, logging.WARNING)
        answer = await request_decision(
            self.decisions,
            "Could not verify existing Python installation.\n\nDo you want to proceed anyway?",
            PROCEED_OR_ABORT
        )
        if answer != Decision.PROCEED:
            return result.fail(FailureKind.USER_DECLINED,
                               "Existing Python installation could not be verified and the user aborted")

        runtime = await self.detector.detect_any(plan.runtime_path)
        if runtime is not None:
            result.note(f"Proceeding with Python found at {runtime}", self.logger)
        else:
            result.note("Proceeding without a verified Python runtime", self.logger, logging.WARNING)
        self.progress.report(STAGE_NAME, 100, "Proceeding with unverified Python installation")
        return result.succeed(runtime)

    async def _download_and_install(self, plan: InstallPlan, installer_path: Path,
                                    result: StageResult) -> StageResult:
        url = plan.resolved_installer_url
        result.note(f"Downloading Python {plan.runtime_version} from {url}...", self.logger)
        self.progress.report(STAGE_NAME, 10, f"Downloading Python {plan.runtime_version}")

        try:
            await self.downloader.fetch(url, installer_path, on_progress=self._download_progress())
        except DownloadError as e:
            message = f"Failed to download Python installer: {e}"
            if e.status is not None:
                message = f"Failed to download Python installer. Status: {e.status}"
            return result.fail(FailureKind.TRANSPORT_FAILURE, message)

        result.note("Download completed. Starting installation...", self.logger)
        self.progress.report(STAGE_NAME, 50, "Download completed")

        existing = await self.detector.probe(plan.runtime_path)
        if existing is not None:
            result.note(f"Python already found at {existing}", self.logger)
            answer = await request_decision(
                self.decisions,
                f"Python is already installed at {existing}.\n\n"
                "Use the existing installation, continue with a new installation "
                "(may upgrade/reinstall), or abort?",
                EXISTING_RUNTIME_OPTIONS
            )
            if answer == Decision.USE_EXISTING:
                result.note(f"Using existing Python installation at {existing}", self.logger)
                self.progress.report(STAGE_NAME, 100, f"Using existing Python {existing.version}")
                return result.succeed(existing)
            if answer != Decision.REINSTALL:
                return result.fail(FailureKind.USER_DECLINED, "Python installation skipped by user")
            result.note("Continuing with a new installation", self.logger)

        try:
            Path(plan.runtime_path).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return result.fail(FailureKind.PREREQUISITE_MISSING,
                               f"Cannot create installation directory {plan.runtime_path}: {e}")

        self.progress.report(STAGE_NAME, 60, f"Running installer for Python {plan.runtime_version}")
        try:
            invocation = await self.executor.run(
                installer_path, self.installer_args(plan), elevated=True
            )
        except ElevationRefusedError as e:
            return result.fail(FailureKind.USER_DECLINED, f"Administrator rights were refused: {e}")
        except ExecError as e:
            return result.fail(FailureKind.PROCESS_FAILURE, f"Could not run the Python installer: {e}")

        return await self._classify_exit_code(plan, invocation.exit_code, result)

    async def _classify_exit_code(self, plan: InstallPlan, exit_code: int,
                                  result: StageResult) -> StageResult:
        if exit_code == 0:
            result.note(f"Python {plan.runtime_version} installed successfully to {plan.runtime_path}",
                        self.logger)
            runtime = await self.detector.probe(plan.runtime_path)
            if runtime is None:
                result.note(f"Installer succeeded but no runtime answers at {plan.runtime_path} yet",
                            self.logger, logging.WARNING)
            else:
                self._check_version(plan, runtime, result)
            self.progress.report(STAGE_NAME, 100, "Python installed")
            return result.succeed(runtime)

        if exit_code == ALREADY_INSTALLED_EXIT_CODE:
            result.note(
                f"Python installation completed (exit code {exit_code} - another version was already installed)",
                self.logger
            )
            result.note(f"Verifying Python installation at {plan.runtime_path}...", self.logger)
            runtime = await self.detector.probe(plan.runtime_path)
            if runtime is None:
                return result.fail(
                    FailureKind.VERIFICATION_FAILURE,
                    "Python verification failed - installation may not have completed properly",
                    exit_code=exit_code
                )
            result.note(f"Python verification successful: {runtime}", self.logger)
            self._check_version(plan, runtime, result)
            self.progress.report(STAGE_NAME, 100, "Python verified")
            return result.succeed(runtime)

        meaning = KNOWN_EXIT_CODES.get(exit_code)
        message = f"Python installation failed with exit code {exit_code}"
        if meaning:
            message += f" ({meaning})"
        return result.fail(FailureKind.PROCESS_FAILURE, message, exit_code=exit_code)

    def _check_version(self, plan: InstallPlan, runtime: DetectedRuntime, result: StageResult) -> None:
        """Any detected version is accepted; a mismatch is only reported."""
        requested = plan.runtime_version
        if runtime.version == requested or runtime.version.startswith(requested + "."):
            return
        result.note(f"Detected Python {runtime.version} differs from requested {requested}",
                    self.logger, logging.WARNING)

    def _download_progress(self):
        last = {"step": -1}

        def report(written: int, total: Optional[int]) -> None:
            if not total:
                return
            step = int(written * 10 / total)
            if step != last["step"]:
                last["step"] = step
                self.progress.report(STAGE_NAME, 10 + step * 4, f"Downloaded {written} of {total} bytes")

        return report

    def _remove_installer(self, installer_path: Path) -> None:
        try:
            installer_path.unlink(missing_ok=True)
        except OSError as e:
            self.logger.warning(f"Could not remove installer {installer_path}: {e}")
