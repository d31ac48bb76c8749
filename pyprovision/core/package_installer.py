"""
Package installation into a provisioned environment with pip.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Sequence, Union

from ..integrations.progress import NullProgressSink, ProgressSink
from ..models.installation import FailureKind, StageResult
from ..models.plan import DEFAULT_MANIFEST_NAME
from ..models.runtime import EnvironmentHandle, ProcessInvocation
from .errors import ExecError
from .process_executor import ProcessExecutor

STAGE_NAME = "packages"


class LineCategory(str, Enum):
    INFO = "info"
    ERROR = "error"
    OTHER = "other"


_INFO_PREFIXES = (
    "collecting",
    "downloading",
    "using cached",
    "requirement already satisfied",
    "installing collected packages",
    "successfully installed",
    "building wheel",
    "preparing metadata",
)

_INFO_KEYWORDS = (
    "progress",
    "already satisfied",
    "cached",
)

_ERROR_KEYWORDS = (
    "error",
    "failed",
    "traceback",
    "exception",
    "could not find a version",
)


def classify_line(line: str) -> LineCategory:
    """
    Classify one line of pip output.

    Only used for reporting; exit codes decide success.
    """
    lowered = line.strip().lower()
    if not lowered:
        return LineCategory.OTHER
    if lowered.startswith(_INFO_PREFIXES):
        return LineCategory.INFO
    if any(keyword in lowered for keyword in _ERROR_KEYWORDS):
        return LineCategory.ERROR
    if any(keyword in lowered for keyword in _INFO_KEYWORDS):
        return LineCategory.INFO
    return LineCategory.OTHER


class PackageInstaller:
    """Upgrades pip and installs the application's dependencies."""

    def __init__(self, executor: ProcessExecutor, progress: Optional[ProgressSink] = None):
        self.logger = logging.getLogger(__name__)
        self.executor = executor
        self.progress = progress or NullProgressSink()
        self.line_counts: Dict[LineCategory, int] = {c: 0 for c in LineCategory}

    async def install(self,
                      env: EnvironmentHandle,
                      repo_path: Union[str, Path],
                      fallback_packages: Sequence[str],
                      manifest_name: str = DEFAULT_MANIFEST_NAME) -> StageResult:
        """
        Install dependencies: from the manifest when it exists, else the fallback list.

        Returns:
            Stage result; value is the list of installed requirement sources
        """
        result = StageResult(stage=STAGE_NAME)
        self.line_counts = {c: 0 for c in LineCategory}
        repo = Path(repo_path)

        self.progress.report(STAGE_NAME, 0, "Upgrading pip")
        upgrade = await self._pip(env, ["install", "--upgrade", "pip"], repo, result)
        if upgrade is None or not upgrade.succeeded:
            result.note("pip upgrade failed; continuing with the existing pip", self.logger, logging.WARNING)
        else:
            result.note("pip upgraded", self.logger)

        manifest = repo / manifest_name
        if manifest.is_file():
            return await self._install_manifest(env, repo, manifest, result)
        return await self._install_fallback(env, repo, fallback_packages, result)

    async def _install_manifest(self, env: EnvironmentHandle, repo: Path, manifest: Path,
                                result: StageResult) -> StageResult:
        result.note(f"Installing dependencies from {manifest.name}", self.logger)
        self.progress.report(STAGE_NAME, 20, f"Installing from {manifest.name}")

        invocation = await self._pip(env, ["install", "-r", str(manifest)], repo, result)
        if invocation is None:
            return result.fail(FailureKind.PROCESS_FAILURE, f"Could not run pip for {manifest.name}")
        if not invocation.succeeded:
            return result.fail(
                FailureKind.PROCESS_FAILURE,
                f"Installing {manifest.name} failed with exit code {invocation.exit_code}",
                exit_code=invocation.exit_code
            )

        self._summarize(result)
        self.progress.report(STAGE_NAME, 100, "Dependencies installed")
        return result.succeed([str(manifest)])

    async def _install_fallback(self, env: EnvironmentHandle, repo: Path,
                                packages: Sequence[str], result: StageResult) -> StageResult:
        if not packages:
            result.note("No dependency manifest and no fallback packages configured", self.logger)
            self.progress.report(STAGE_NAME, 100, "Nothing to install")
            return result.succeed([])

        result.note(f"No dependency manifest found; installing {len(packages)} default packages",
                    self.logger)
        installed = []
        for index, package in enumerate(packages):
            self.progress.report(STAGE_NAME, 20 + 80 * index / len(packages), f"Installing {package}")
            invocation = await self._pip(env, ["install", package], repo, result)
            if invocation is not None and invocation.succeeded:
                installed.append(package)
                result.note(f"Installed {package}", self.logger)
            else:
                code = invocation.exit_code if invocation is not None else "n/a"
                result.note(f"Failed to install {package} (exit code {code}); continuing",
                            self.logger, logging.WARNING)

        self._summarize(result)
        self.progress.report(STAGE_NAME, 100, f"Installed {len(installed)} of {len(packages)} packages")
        return result.succeed(installed)

    async def _pip(self, env: EnvironmentHandle, args: Sequence[str], repo: Path,
                   result: StageResult) -> Optional[ProcessInvocation]:
        """Run pip inside the environment; None when it could not be started."""
        try:
            return await self.executor.run(
                env.python, ["-m", "pip", *args], working_dir=repo, on_output=self._on_output
            )
        except ExecError as e:
            result.note(f"Could not run pip: {e}", self.logger, logging.WARNING)
            return None

    def _on_output(self, stream: str, line: str) -> None:
        category = classify_line(line)
        self.line_counts[category] += 1
        if category == LineCategory.ERROR:
            self.logger.warning(f"pip: {line}")
        elif category == LineCategory.INFO:
            self.logger.debug(f"pip: {line}")
        elif line.strip():
            self.logger.info(f"pip: {line}")

    def _summarize(self, result: StageResult) -> None:
        counts = self.line_counts
        result.note(
            f"pip output: {counts[LineCategory.INFO]} informational, "
            f"{counts[LineCategory.ERROR]} error, {counts[LineCategory.OTHER]} other lines",
            self.logger
        )
