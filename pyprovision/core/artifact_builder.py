"""
Launch artifacts: launcher scripts, a hidden-console wrapper and a desktop shortcut.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from ..integrations.progress import NullProgressSink, ProgressSink
from ..models.installation import FailureKind, StageResult
from ..models.runtime import EnvironmentHandle, LauncherArtifacts
from ..utils.platform import IS_WINDOWS, default_desktop_dir, env_pythonw
from .errors import ExecError
from .process_executor import ProcessExecutor, _ps_quote

STAGE_NAME = "artifacts"

ICON_DIRS = ("", "assets", "icons", "resources", "images")
ICON_EXTENSIONS = (".ico", ".png")


class ArtifactBuilder:
    """Writes the files a user needs to start the installed application."""

    def __init__(self,
                 executor: ProcessExecutor,
                 desktop_dir: Optional[Path] = None,
                 windows: bool = IS_WINDOWS,
                 progress: Optional[ProgressSink] = None):
        """
        Initialize the artifact builder.

        Args:
            executor: Runs PowerShell to create Windows shortcuts
            desktop_dir: Where the shortcut goes (the user's Desktop if None)
            windows: Emit Windows artifacts (.bat/.ps1/.vbs/.lnk)
            progress: Receives progress milestones
        """
        self.logger = logging.getLogger(__name__)
        self.executor = executor
        self.desktop_dir = Path(desktop_dir) if desktop_dir else default_desktop_dir()
        self.windows = windows
        self.progress = progress or NullProgressSink()

    async def build(self,
                    env: EnvironmentHandle,
                    repo_path: Union[str, Path],
                    entry_program: str,
                    want_shortcut: bool) -> StageResult:
        """
        Write launchers and, if requested, the shortcut.

        Returns:
            Stage result whose value is the LauncherArtifacts
        """
        result = StageResult(stage=STAGE_NAME)
        repo = Path(repo_path)
        name = Path(entry_program).stem or "app"
        artifacts = LauncherArtifacts()

        self.progress.report(STAGE_NAME, 0, "Writing launcher scripts")
        if not (repo / entry_program).exists():
            result.note(f"Entry program {entry_program} not found in {repo}; it may be provided later",
                        self.logger, logging.WARNING)

        if self.windows:
            artifacts.launchers.append(
                self._write(repo / f"run_{name}.bat", self._batch_launcher(env, entry_program)))
        else:
            artifacts.launchers.append(
                self._write(repo / f"run_{name}.sh", self._shell_launcher(env, entry_program)))
        artifacts.launchers.append(
            self._write(repo / f"run_{name}.ps1", self._powershell_launcher(env, entry_program)))
        for launcher in artifacts.launchers:
            result.note(f"Wrote launcher {launcher}", self.logger)

        if not want_shortcut:
            self.progress.report(STAGE_NAME, 100, "Launchers written")
            return result.succeed(artifacts)

        self.progress.report(STAGE_NAME, 50, "Creating desktop shortcut")
        artifacts.icon = self.find_icon(repo, name)
        if artifacts.icon is None:
            result.note("No icon found; creating the shortcut without one", self.logger, logging.WARNING)
        else:
            result.note(f"Using icon {artifacts.icon}", self.logger)

        if self.windows:
            artifacts.wrapper = self._write(repo / f"launch_{name}.vbs",
                                            self._vbs_wrapper(env, repo, entry_program))
            shortcut = self.desktop_dir / f"{name}.lnk"
            try:
                invocation = await self.executor.run(
                    "powershell",
                    ["-NoProfile", "-Command",
                     self._shortcut_script(shortcut, artifacts.wrapper, repo, artifacts.icon)]
                )
            except ExecError as e:
                return result.fail(FailureKind.PROCESS_FAILURE, f"Could not create shortcut: {e}")
            if not invocation.succeeded:
                return result.fail(FailureKind.PROCESS_FAILURE,
                                   f"Shortcut creation failed with exit code {invocation.exit_code}",
                                   exit_code=invocation.exit_code)
        else:
            artifacts.wrapper = self._write(repo / f"launch_{name}.sh",
                                            self._detached_wrapper(env, repo, entry_program))
            shortcut = self._write(self.desktop_dir / f"{name}.desktop",
                                   self._desktop_entry(name, artifacts.wrapper, repo, artifacts.icon))

        artifacts.shortcut = shortcut
        result.note(f"Created desktop shortcut {shortcut}", self.logger)
        self.progress.report(STAGE_NAME, 100, "Shortcut created")
        return result.succeed(artifacts)

    def find_icon(self, repo: Path, name: str) -> Optional[Path]:
        """First icon at a conventional location, else the first found recursively."""
        for extension in ICON_EXTENSIONS:
            for directory in ICON_DIRS:
                for stem in ("icon", name):
                    candidate = repo / directory / f"{stem}{extension}"
                    if candidate.is_file():
                        return candidate

        for extension in ICON_EXTENSIONS:
            matches = sorted(
                p for p in repo.rglob(f"*{extension}")
                if p.is_file() and ".venv" not in p.parts and ".git" not in p.parts
            )
            if matches:
                return matches[0]
        return None

    def _write(self, path: Path, content: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        path.chmod(0o755)
        return path

    def _batch_launcher(self, env: EnvironmentHandle, entry_program: str) -> str:
        return (
            "@echo off\n"
            "cd /d \"%~dp0\"\n"
            f"call \"{env.scripts_dir / 'activate.bat'}\"\n"
            f"\"{env.python}\" \"{entry_program}\" %*\n"
        )

    def _shell_launcher(self, env: EnvironmentHandle, entry_program: str) -> str:
        return (
            "#!/usr/bin/env sh\n"
            "cd \"$(dirname \"$0\")\" || exit 1\n"
            f". \"{env.scripts_dir / 'activate'}\"\n"
            f"exec \"{env.python}\" \"{entry_program}\" \"$@\"\n"
        )

    def _powershell_launcher(self, env: EnvironmentHandle, entry_program: str) -> str:
        return (
            "Set-Location -Path $PSScriptRoot\n"
            f"& \"{env.scripts_dir / 'Activate.ps1'}\"\n"
            f"& \"{env.python}\" \"{entry_program}\" @args\n"
        )

    def _vbs_wrapper(self, env: EnvironmentHandle, repo: Path, entry_program: str) -> str:
        pythonw = env_pythonw(env.path, windows=True)
        return (
            "Set shell = CreateObject(\"WScript.Shell\")\n"
            f"shell.CurrentDirectory = \"{repo}\"\n"
            f"shell.Run \"\"\"{pythonw}\"\" \"\"{entry_program}\"\"\", 0, False\n"
        )

    def _detached_wrapper(self, env: EnvironmentHandle, repo: Path, entry_program: str) -> str:
        return (
            "#!/usr/bin/env sh\n"
            f"cd \"{repo}\" || exit 1\n"
            f"nohup \"{env.python}\" \"{entry_program}\" >/dev/null 2>&1 &\n"
        )

    def _desktop_entry(self, name: str, wrapper: Path, repo: Path, icon: Optional[Path]) -> str:
        lines = [
            "[Desktop Entry]",
            "Type=Application",
            f"Name={name}",
            f"Exec=\"{wrapper}\"",
            f"Path={repo}",
            "Terminal=false",
        ]
        if icon is not None:
            lines.append(f"Icon={icon}")
        return "\n".join(lines) + "\n"

    def _shortcut_script(self, shortcut: Path, wrapper: Path, repo: Path, icon: Optional[Path]) -> str:
        arguments = _ps_quote('"' + str(wrapper) + '"')
        script = (
            "$ws = New-Object -ComObject WScript.Shell;"
            f"$s = $ws.CreateShortcut({_ps_quote(str(shortcut))});"
            "$s.TargetPath = 'wscript.exe';"
            f"$s.Arguments = {arguments};"
            f"$s.WorkingDirectory = {_ps_quote(str(repo))};"
        )
        if icon is not None:
            script += f"$s.IconLocation = {_ps_quote(str(icon))};"
        return script + "$s.Save();"
