"""
Runtime detection: find an existing Python interpreter that answers a version probe.
"""

import getpass
import logging
import re
import shutil
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Union

from ..models.runtime import DetectedRuntime
from ..utils.platform import IS_WINDOWS, runtime_executable
from .errors import ExecError
from .process_executor import ProcessExecutor

PROBE_TIMEOUT_SECONDS = 15.0

_VERSION_PATTERN = re.compile(r"Python\s+(\d+\.\d+(?:\.\d+)?\S*)")

_CONVENTIONAL_VERSIONS = ("312", "311", "310", "39")


def conventional_dirs(windows: bool = IS_WINDOWS) -> List[Path]:
    """Conventional installation directories, most preferred first."""
    if windows:
        user = getpass.getuser()
        dirs = [Path(f"C:\\Python{v}") for v in _CONVENTIONAL_VERSIONS]
        dirs += [Path(f"C:\\Program Files\\Python{v}") for v in _CONVENTIONAL_VERSIONS]
        dirs += [
            Path(f"C:\\Users\\{user}\\AppData\\Local\\Programs\\Python\\Python{v}")
            for v in _CONVENTIONAL_VERSIONS
        ]
        return dirs
    return [Path("/usr/local/bin"), Path("/usr/bin"), Path("/opt/homebrew/bin")]


def parse_version(output: str) -> Optional[str]:
    """Extract the version from ``python --version`` output."""
    match = _VERSION_PATTERN.search(output or "")
    return match.group(1) if match else None


class RuntimeDetector:
    """Finds a responding runtime among prioritized candidate paths."""

    def __init__(self,
                 executor: ProcessExecutor,
                 windows: bool = IS_WINDOWS,
                 search_dirs: Optional[Sequence[Path]] = None,
                 which: Callable[[str], Optional[str]] = shutil.which,
                 probe_timeout: float = PROBE_TIMEOUT_SECONDS):
        """
        Initialize the detector.

        Args:
            executor: Used to run version probes
            windows: Use Windows executable names and directories
            search_dirs: Conventional installation directories (platform default if None)
            which: Search-path resolver
            probe_timeout: Seconds allowed for each version probe
        """
        self.logger = logging.getLogger(__name__)
        self.executor = executor
        self.windows = windows
        self.search_dirs = list(search_dirs) if search_dirs is not None else conventional_dirs(windows)
        self.which = which
        self.probe_timeout = probe_timeout

    def target_candidates(self, target_path: Union[str, Path, None]) -> List[Path]:
        """Candidates for an explicitly configured installation directory."""
        if not target_path:
            return []
        target = Path(target_path)
        if target.suffix.lower() == ".exe" or target.is_file():
            return [target]
        candidates = [runtime_executable(target, self.windows)]
        if not self.windows:
            candidates.append(target / "bin" / "python")
        return candidates

    def candidate_paths(self, target_path: Union[str, Path, None] = None) -> List[Path]:
        """
        Build the prioritized candidate list.

        The explicit target comes first, then conventional directories,
        then whatever the search path resolves.
        """
        candidates = self.target_candidates(target_path)

        exe_names = ["python.exe"] if self.windows else ["python3", "python"]
        for directory in self.search_dirs:
            candidates.extend(directory / name for name in exe_names)

        for name in ("python", "python3"):
            resolved = self.which(name)
            if resolved:
                candidates.append(Path(resolved))

        unique: List[Path] = []
        for candidate in candidates:
            if candidate not in unique:
                unique.append(candidate)
        return unique

    async def detect(self, candidate_paths: Iterable[Union[str, Path]]) -> Optional[DetectedRuntime]:
        """
        Probe candidates in order; the first that reports a version wins.

        Returns:
            The detected runtime, or None when no candidate responds
        """
        for candidate in candidate_paths:
            runtime = await self._probe_one(Path(candidate))
            if runtime is not None:
                self.logger.info(f"Detected runtime: {runtime}")
                return runtime
        self.logger.info("No responding runtime found")
        return None

    async def probe(self, target_path: Union[str, Path, None]) -> Optional[DetectedRuntime]:
        """Probe only the explicitly configured target."""
        return await self.detect(self.target_candidates(target_path))

    async def detect_any(self, target_path: Union[str, Path, None] = None) -> Optional[DetectedRuntime]:
        """Full search over every candidate location."""
        return await self.detect(self.candidate_paths(target_path))

    async def _probe_one(self, executable: Path) -> Optional[DetectedRuntime]:
        try:
            invocation = await self.executor.run(
                executable, ["--version"], timeout=self.probe_timeout
            )
        except ExecError as e:
            self.logger.debug(f"Probe of {executable} failed: {e}")
            return None

        if not invocation.succeeded:
            self.logger.debug(f"Probe of {executable} exited with {invocation.exit_code}")
            return None

        # Python 2 printed its version on stderr.
        version = parse_version(invocation.output)
        if not version:
            self.logger.debug(f"Probe of {executable} gave no parseable version")
            return None

        return DetectedRuntime(path=executable, version=version)
