"""
Repository acquisition: clone the application repository with git.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from ..integrations.progress import NullProgressSink, ProgressSink
from ..models.installation import FailureKind, StageResult
from .errors import ExecError, ExecutableNotFoundError
from .process_executor import ProcessExecutor

STAGE_NAME = "repository"


def derive_repo_name(url: str) -> str:
    """
    Directory name for a repository URL.

    The last path segment with a trailing ``.git`` removed; scp-style
    ``git@host:owner/repo.git`` URLs are handled too.
    """
    tail = url.strip().rstrip("/").replace("\\", "/")
    tail = tail.split("/")[-1].split(":")[-1]
    if tail.endswith(".git"):
        tail = tail[:-len(".git")]
    return tail


class RepositoryAcquirer:
    """Clones a repository under a destination root."""

    def __init__(self, executor: ProcessExecutor, git_executable: str = "git",
                 progress: Optional[ProgressSink] = None):
        self.logger = logging.getLogger(__name__)
        self.executor = executor
        self.git_executable = git_executable
        self.progress = progress or NullProgressSink()

    async def clone(self, url: str, dest_root: Union[str, Path]) -> StageResult:
        """
        Clone ``url`` into ``dest_root/<derived name>``.

        Returns:
            Stage result whose value is the local repository path
        """
        result = StageResult(stage=STAGE_NAME)
        self.progress.report(STAGE_NAME, 0, "Starting repository clone...")

        url = (url or "").strip()
        if not url or not str(dest_root or "").strip():
            return result.fail(FailureKind.PREREQUISITE_MISSING,
                               "Please specify both repository URL and clone path")

        name = derive_repo_name(url)
        if not name:
            return result.fail(FailureKind.PREREQUISITE_MISSING,
                               f"Cannot derive a directory name from {url}")

        root = Path(dest_root)
        target = root / name
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return result.fail(FailureKind.PREREQUISITE_MISSING, f"Cannot create clone path {root}: {e}")

        if target.exists() and (not target.is_dir() or any(target.iterdir())):
            if target.is_dir() and (target / ".git").exists():
                result.note(f"Repository already present at {target}; reusing it", self.logger)
                self.progress.report(STAGE_NAME, 100, f"Using existing clone at {target}")
                return result.succeed(target)
            return result.fail(
                FailureKind.PROCESS_FAILURE,
                f"Clone destination {target} exists and is not an empty directory or a git repository"
            )

        result.note(f"Cloning {url} to {target}...", self.logger)
        self.progress.report(STAGE_NAME, 25, f"Cloning {url}")

        def on_output(stream: str, line: str) -> None:
            if line.strip():
                self.logger.debug(f"git: {line}")

        try:
            invocation = await self.executor.run(
                self.git_executable,
                ["clone", "--progress", url, str(target)],
                working_dir=root,
                on_output=on_output
            )
        except ExecutableNotFoundError as e:
            return result.fail(FailureKind.PREREQUISITE_MISSING, f"git is not available: {e}")
        except ExecError as e:
            return result.fail(FailureKind.TRANSPORT_FAILURE, f"Repository clone failed: {e}")

        if not invocation.succeeded:
            # Partial clones stay on disk for inspection.
            detail = next((l for l in reversed(invocation.stderr_lines) if l.strip()), "")
            message = f"Repository clone failed with exit code {invocation.exit_code}"
            if detail:
                message += f": {detail.strip()}"
            return result.fail(FailureKind.TRANSPORT_FAILURE, message, exit_code=invocation.exit_code)

        result.note(f"Repository cloned successfully to {target}", self.logger)
        self.progress.report(STAGE_NAME, 100, "Repository cloned")
        return result.succeed(target)
