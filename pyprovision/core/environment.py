"""
Isolated environment provisioning.
"""

import logging
import shutil
from pathlib import Path
from typing import Optional, Union

from ..integrations.progress import NullProgressSink, ProgressSink
from ..models.installation import FailureKind, StageResult
from ..models.runtime import DetectedRuntime, EnvironmentHandle
from ..utils.platform import ENV_DIRNAME, IS_WINDOWS, env_python
from .errors import ExecError
from .process_executor import ProcessExecutor

STAGE_NAME = "environment"


class EnvironmentProvisioner:
    """Creates the repository's virtual environment, replacing any previous one."""

    def __init__(self, executor: ProcessExecutor, windows: bool = IS_WINDOWS,
                 env_dirname: str = ENV_DIRNAME, progress: Optional[ProgressSink] = None):
        self.logger = logging.getLogger(__name__)
        self.executor = executor
        self.windows = windows
        self.env_dirname = env_dirname
        self.progress = progress or NullProgressSink()

    def env_dir(self, repo_path: Union[str, Path]) -> Path:
        return Path(repo_path) / self.env_dirname

    async def provision(self, repo_path: Union[str, Path], runtime: DetectedRuntime) -> StageResult:
        """
        Create a fresh environment inside ``repo_path`` using ``runtime``.

        Returns:
            Stage result whose value is the EnvironmentHandle
        """
        result = StageResult(stage=STAGE_NAME)
        env_dir = self.env_dir(repo_path)
        self.progress.report(STAGE_NAME, 0, f"Creating virtual environment at {env_dir}")

        if env_dir.exists():
            result.note(f"Removing existing environment at {env_dir}", self.logger)
            try:
                shutil.rmtree(env_dir)
            except OSError as e:
                return result.fail(FailureKind.PROCESS_FAILURE,
                                   f"Could not remove existing environment {env_dir}: {e}")

        self.progress.report(STAGE_NAME, 30, "Running venv")
        try:
            invocation = await self.executor.run(
                runtime.path, ["-m", "venv", str(env_dir)], working_dir=repo_path
            )
        except ExecError as e:
            return result.fail(FailureKind.PROCESS_FAILURE, f"Could not create virtual environment: {e}")

        if not invocation.succeeded:
            for line in invocation.stderr_lines[-5:]:
                result.note(line, self.logger, logging.WARNING)
            return result.fail(
                FailureKind.PROCESS_FAILURE,
                f"Virtual environment creation failed with exit code {invocation.exit_code}",
                exit_code=invocation.exit_code
            )

        python = env_python(env_dir, self.windows)
        if not python.exists():
            return result.fail(FailureKind.VERIFICATION_FAILURE,
                               f"Environment interpreter not found at {python}")

        handle = EnvironmentHandle(path=env_dir, python=python)
        result.note(f"Virtual environment created at {env_dir}", self.logger)
        self.progress.report(STAGE_NAME, 100, "Virtual environment ready")
        return result.succeed(handle)
