"""
Orchestrator - runs the provisioning stages in dependency order.
"""

import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional

from ..integrations.decisions import DecisionCallback
from ..integrations.progress import LoggingProgressSink, ProgressSink
from ..models.installation import FailureKind, PipelineState, RunReport, StageResult
from ..models.plan import InstallPlan
from ..utils.platform import IS_WINDOWS
from .artifact_builder import ArtifactBuilder
from .downloader import Downloader
from .environment import EnvironmentProvisioner
from .package_installer import PackageInstaller
from .process_executor import ProcessExecutor
from .repository import RepositoryAcquirer
from .runtime_detector import RuntimeDetector
from .runtime_installer import RuntimeInstaller


class InstallationOrchestrator:
    """Runs one installation: runtime, repository, environment, packages, artifacts."""

    def __init__(self,
                 runtime_installer: RuntimeInstaller,
                 detector: RuntimeDetector,
                 repository: RepositoryAcquirer,
                 environment: EnvironmentProvisioner,
                 packages: PackageInstaller,
                 artifacts: ArtifactBuilder,
                 progress: Optional[ProgressSink] = None):
        self.logger = logging.getLogger(__name__)
        self.runtime_installer = runtime_installer
        self.detector = detector
        self.repository = repository
        self.environment = environment
        self.packages = packages
        self.artifacts = artifacts
        self.progress = progress or LoggingProgressSink()

        self.state = PipelineState.IDLE
        self._running = False
        self._cancel_requested = False

    @classmethod
    def create(cls,
               decisions: DecisionCallback,
               progress: Optional[ProgressSink] = None,
               executor: Optional[ProcessExecutor] = None,
               downloader: Optional[Downloader] = None,
               windows: bool = IS_WINDOWS,
               desktop_dir=None) -> "InstallationOrchestrator":
        """Wire up the default components."""
        progress = progress or LoggingProgressSink()
        executor = executor or ProcessExecutor(windows=windows)
        downloader = downloader or Downloader()
        detector = RuntimeDetector(executor, windows=windows)
        return cls(
            runtime_installer=RuntimeInstaller(downloader, executor, detector, decisions, progress),
            detector=detector,
            repository=RepositoryAcquirer(executor, progress=progress),
            environment=EnvironmentProvisioner(executor, windows=windows, progress=progress),
            packages=PackageInstaller(executor, progress=progress),
            artifacts=ArtifactBuilder(executor, desktop_dir=desktop_dir, windows=windows, progress=progress),
            progress=progress
        )

    def cancel(self) -> None:
        """Abandon the run before the next stage starts."""
        self._cancel_requested = True

    async def run(self, plan: InstallPlan) -> RunReport:
        """
        Run every stage for ``plan``, stopping at the first failure.

        Returns:
            Report naming the terminal state and, on failure, the failed stage
        """
        if self._running:
            raise RuntimeError("An installation is already running")
        self._running = True
        self._cancel_requested = False
        self.state = PipelineState.IDLE
        start_time = datetime.now(timezone.utc)
        report = RunReport(state=PipelineState.IDLE)

        self.logger.info("Starting complete installation process...")
        try:
            runtime = None
            repo_path = None
            env = None

            steps: List[tuple] = [
                (PipelineState.RUNTIME_READY, lambda: self.runtime_installer.install(plan)),
                (PipelineState.REPO_READY,
                 lambda: self.repository.clone(plan.repository_url, plan.clone_root)),
                (PipelineState.ENV_READY, lambda: self._provision(repo_path, runtime, plan)),
                (PipelineState.PACKAGES_READY,
                 lambda: self.packages.install(env, repo_path, plan.fallback_packages, plan.manifest_name)),
                (PipelineState.ARTIFACTS_READY,
                 lambda: self.artifacts.build(env, repo_path, plan.entry_program, plan.create_shortcut)),
            ]

            for target_state, step in steps:
                result = await self._run_stage(target_state, step)
                report.stages.append(result)

                if not result.success:
                    self.state = PipelineState.FAILED
                    report.state = PipelineState.FAILED
                    report.failed_stage = target_state
                    report.failure = result.failure
                    self.logger.error(f"Stage {target_state.value} failed: {result.failure}. Stopping process.")
                    break

                self.state = target_state
                if target_state == PipelineState.RUNTIME_READY:
                    runtime = result.value
                elif target_state == PipelineState.REPO_READY:
                    repo_path = result.value
                elif target_state == PipelineState.ENV_READY:
                    env = result.value
            else:
                self.state = PipelineState.DONE
                report.state = PipelineState.DONE

            report.duration_seconds = (datetime.now(timezone.utc) - start_time).total_seconds()
            self.logger.info(report.summary())
            self.progress.report("install", 100, report.summary())
            return report
        finally:
            self._running = False

    async def _run_stage(self, target_state: PipelineState,
                         step: Callable[[], Awaitable[StageResult]]) -> StageResult:
        stage_name = target_state.value
        if self._cancel_requested:
            return StageResult(stage=stage_name).fail(FailureKind.USER_DECLINED,
                                                      "Installation cancelled before this stage")
        try:
            result = await step()
        except Exception as e:
            self.logger.error(f"Unexpected error in stage {stage_name}: {e}", exc_info=True)
            return StageResult(stage=stage_name).fail(FailureKind.INTERNAL_ERROR, str(e))

        if result.success:
            self.logger.info(f"Stage {result.stage} completed")
        return result

    async def _provision(self, repo_path, runtime, plan: InstallPlan) -> StageResult:
        if runtime is None:
            runtime = await self.detector.detect_any(plan.runtime_path)
        if runtime is None:
            return StageResult(stage="environment").fail(
                FailureKind.PREREQUISITE_MISSING,
                "No Python runtime available to create the virtual environment"
            )
        return await self.environment.provision(repo_path, runtime)
