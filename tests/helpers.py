"""Fake collaborators shared by the pipeline tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from pyprovision.core.errors import DownloadError, ExecutableNotFoundError
from pyprovision.core.runtime_detector import RuntimeDetector
from pyprovision.models.plan import InstallPlan
from pyprovision.models.runtime import ProcessInvocation

HandlerResult = Tuple[int, List[str], List[str]]


class RecordingProgressSink:
    """Keeps every progress report in memory."""

    def __init__(self):
        self.events: List[Tuple[str, float, str]] = []

    def report(self, stage_name: str, percent: float, message: str) -> None:
        self.events.append((stage_name, percent, message))

    def stages(self) -> List[str]:
        seen: List[str] = []
        for stage_name, _, _ in self.events:
            if stage_name not in seen:
                seen.append(stage_name)
        return seen


@dataclass
class ProcessCall:
    command: str
    args: List[str]
    working_dir: Optional[str]
    elevated: bool


class FakeExecutor:
    """Stands in for ProcessExecutor; a handler decides what each command does."""

    def __init__(self, handler: Callable[[str, List[str], Optional[str]], HandlerResult]):
        self.handler = handler
        self.calls: List[ProcessCall] = []

    async def run(self, command, args=(), working_dir=None, capture_output=True,
                  elevated=False, on_output=None, timeout=None) -> ProcessInvocation:
        command = str(command)
        arg_list = [str(a) for a in args]
        cwd = str(working_dir) if working_dir is not None else None
        self.calls.append(ProcessCall(command, arg_list, cwd, elevated))

        exit_code, stdout, stderr = self.handler(command, arg_list, cwd)
        if on_output is not None:
            for line in stdout:
                on_output("stdout", line)
            for line in stderr:
                on_output("stderr", line)
        return ProcessInvocation(
            command=command,
            args=arg_list,
            working_dir=cwd,
            stdout_lines=list(stdout),
            stderr_lines=list(stderr),
            exit_code=exit_code,
            elevated=elevated,
        )


class FakeDownloader:
    """Writes a dummy installer, or fails with the configured status."""

    def __init__(self, status: Optional[int] = None):
        self.status = status
        self.urls: List[str] = []
        self.destinations: List[Path] = []

    async def fetch(self, url, dest_path, on_progress=None) -> Path:
        self.urls.append(url)
        dest = Path(dest_path)
        self.destinations.append(dest)
        if self.status is not None:
            raise DownloadError(f"Download of {url} failed with status {self.status}", status=self.status)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(b"MZ fake installer")
        if on_progress:
            on_progress(17, 17)
        return dest


@dataclass
class FakeHost:
    """
    Simulates the machine the pipeline drives: the Python installer, version
    probes, git, venv and pip.
    """

    root: Path
    runtime_present: bool = False
    runtime_version: str = "3.12.6"
    installer_exit: int = 0
    installer_installs: bool = True
    git_exit: int = 0
    venv_exit: int = 0
    pip_upgrade_exit: int = 0
    pip_exit_codes: Dict[str, int] = field(default_factory=dict)
    repo_files: Dict[str, str] = field(default_factory=lambda: {"main.py": "print('hi')\n"})
    executor: FakeExecutor = field(init=False)

    def __post_init__(self):
        self.executor = FakeExecutor(self.handle)

    @property
    def target(self) -> Path:
        return self.root / "python"

    @property
    def runtime_exe(self) -> Path:
        return self.target / "bin" / "python3"

    @property
    def calls(self) -> List[ProcessCall]:
        return self.executor.calls

    def calls_where(self, predicate: Callable[[ProcessCall], bool]) -> List[ProcessCall]:
        return [c for c in self.calls if predicate(c)]

    def installer_calls(self) -> List[ProcessCall]:
        return self.calls_where(lambda c: c.command.endswith("-installer.exe"))

    def git_calls(self) -> List[ProcessCall]:
        return self.calls_where(lambda c: c.command == "git")

    def venv_calls(self) -> List[ProcessCall]:
        return self.calls_where(lambda c: c.args[:2] == ["-m", "venv"])

    def pip_calls(self) -> List[ProcessCall]:
        return self.calls_where(lambda c: c.args[:2] == ["-m", "pip"])

    def handle(self, command: str, args: List[str], working_dir: Optional[str]) -> HandlerResult:
        if command.endswith("-installer.exe"):
            if self.installer_installs:
                self.runtime_present = True
            return self.installer_exit, [], []

        if args == ["--version"]:
            if self.runtime_present and command == str(self.runtime_exe):
                return 0, [f"Python {self.runtime_version}"], []
            raise ExecutableNotFoundError(f"Executable not found: {command}", command, args)

        if command == "git":
            target = Path(args[-1])
            target.mkdir(parents=True, exist_ok=True)
            if self.git_exit:
                return self.git_exit, [], ["fatal: could not read from remote repository"]
            (target / ".git").mkdir()
            for name, content in self.repo_files.items():
                path = target / name
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(content)
            return 0, [], [f"Cloning into '{target}'..."]

        if args[:2] == ["-m", "venv"]:
            if self.venv_exit:
                return self.venv_exit, [], ["Error: Command '-m ensurepip' returned non-zero exit status 1"]
            env = Path(args[2])
            (env / "bin").mkdir(parents=True)
            (env / "bin" / "python").write_text("")
            (env / "pyvenv.cfg").write_text("home = /usr/bin\n")
            return 0, [], []

        if args[:2] == ["-m", "pip"]:
            pip_args = args[2:]
            if pip_args == ["install", "--upgrade", "pip"]:
                return self.pip_upgrade_exit, ["Requirement already satisfied: pip"], []
            key = Path(pip_args[-1]).name
            code = self.pip_exit_codes.get(key, 0)
            if code:
                return code, [], [f"ERROR: No matching distribution found for {key}"]
            return 0, [f"Collecting {key}", f"Successfully installed {key}"], []

        raise AssertionError(f"Unexpected command: {command} {args}")


def make_detector(executor, which: Callable[[str], Optional[str]] = lambda name: None,
                  search_dirs: Sequence[Path] = ()) -> RuntimeDetector:
    return RuntimeDetector(executor, windows=False, search_dirs=list(search_dirs), which=which)


def make_plan(host: FakeHost, **overrides) -> InstallPlan:
    values = dict(
        runtime_version="3.12.6",
        runtime_path=str(host.target),
        already_installed=False,
        repository_url="https://github.com/example/astrofiler-gui.git",
        clone_root=str(host.root / "apps"),
        create_shortcut=True,
        entry_program="main.py",
    )
    values.update(overrides)
    return InstallPlan(**values)
