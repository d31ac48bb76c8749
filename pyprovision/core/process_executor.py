"""
Process executor for running installers and tools as child processes.
"""

import asyncio
import logging
import os
import shlex
import subprocess
from typing import Callable, List, Optional, Sequence, Union
from pathlib import Path

from ..models.runtime import ProcessInvocation
from ..utils.platform import IS_WINDOWS
from .errors import (
    ElevationRefusedError,
    ExecError,
    ExecutableNotFoundError,
    ProcessKilledError,
    ProcessTimeoutError,
)

OutputCallback = Callable[[str, str], None]

# Large enough for pip's progress output on a single line.
STREAM_LIMIT = 1024 * 1024

_ELEVATION_REFUSED_MARKERS = (
    "canceled by the user",
    "cancelled by the user",
    "a password is required",
    "a terminal is required",
)


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def _ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class ProcessExecutor:
    """Runs child processes, draining stdout and stderr while they execute."""

    def __init__(self, windows: bool = IS_WINDOWS, encoding: str = "utf-8"):
        """
        Initialize the executor.

        Args:
            windows: Use Windows conventions for elevation
            encoding: Encoding used to decode child output
        """
        self.logger = logging.getLogger(__name__)
        self.windows = windows
        self.encoding = encoding

    async def run(self,
                  command: Union[str, Path],
                  args: Sequence[Union[str, Path]] = (),
                  working_dir: Optional[Union[str, Path]] = None,
                  capture_output: bool = True,
                  elevated: bool = False,
                  on_output: Optional[OutputCallback] = None,
                  timeout: Optional[float] = None) -> ProcessInvocation:
        """
        Run a command to completion.

        Args:
            command: Executable to run
            args: Arguments for the executable
            working_dir: Working directory of the child
            capture_output: Capture stdout/stderr line by line
            elevated: Run with administrator rights
            on_output: Called with (stream_name, line) for every captured line
            timeout: Seconds to wait before killing the child

        Returns:
            The completed invocation

        Raises:
            ExecError: the process could not be run to completion
        """
        command = str(command)
        arg_list = [str(a) for a in args]
        cwd = str(working_dir) if working_dir is not None else None
        argv = self._elevate([command, *arg_list]) if elevated else [command, *arg_list]

        self.logger.info(f"CMD {_fmt_argv(argv)}")

        pipe = asyncio.subprocess.PIPE if capture_output else asyncio.subprocess.DEVNULL
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=pipe,
                stderr=pipe,
                cwd=cwd,
                limit=STREAM_LIMIT
            )
        except FileNotFoundError as e:
            if elevated and argv[0] != command:
                raise ElevationRefusedError(
                    f"Elevation helper {argv[0]} is not available", command, arg_list
                ) from e
            raise ExecutableNotFoundError(f"Executable not found: {command}", command, arg_list) from e
        except PermissionError as e:
            raise ExecutableNotFoundError(f"Executable not runnable: {command} ({e})", command, arg_list) from e
        except OSError as e:
            raise ExecError(f"Failed to start {command}: {e}", command, arg_list) from e

        stdout_lines: List[str] = []
        stderr_lines: List[str] = []
        readers = []
        if capture_output:
            readers = [
                asyncio.create_task(self._drain(process.stdout, "stdout", stdout_lines, on_output)),
                asyncio.create_task(self._drain(process.stderr, "stderr", stderr_lines, on_output)),
            ]

        try:
            exit_code = await asyncio.wait_for(self._wait(process, readers), timeout=timeout)
        except asyncio.TimeoutError:
            if process.returncode is None:
                process.kill()
            await process.wait()
            await asyncio.gather(*readers, return_exceptions=True)
            raise ProcessTimeoutError(
                f"{command} did not finish within {timeout} seconds", command, arg_list
            )

        if exit_code < 0 and not self.windows:
            raise ProcessKilledError(
                f"{command} was killed by signal {-exit_code}", command, arg_list,
                signal_number=-exit_code
            )

        if elevated and exit_code != 0:
            stderr_text = "\n".join(stderr_lines).lower()
            if any(marker in stderr_text for marker in _ELEVATION_REFUSED_MARKERS):
                raise ElevationRefusedError(f"Elevation refused for {command}", command, arg_list)

        self.logger.debug(f"{command} exited with code {exit_code}")
        return ProcessInvocation(
            command=command,
            args=arg_list,
            working_dir=cwd,
            stdout_lines=stdout_lines,
            stderr_lines=stderr_lines,
            exit_code=exit_code,
            elevated=elevated
        )

    async def _wait(self, process, readers) -> int:
        """Join both readers, then collect the exit status."""
        await asyncio.gather(*readers)
        return await process.wait()

    async def _drain(self, stream: asyncio.StreamReader, name: str,
                     sink: List[str], on_output: Optional[OutputCallback]) -> None:
        """Read one stream line by line until EOF."""
        while True:
            try:
                raw = await stream.readline()
            except ValueError:
                # Line longer than the stream limit; take what is buffered.
                raw = await stream.read(STREAM_LIMIT)
            if not raw:
                break
            line = raw.decode(self.encoding, errors="replace").rstrip("\r\n")
            sink.append(line)
            if on_output is not None:
                on_output(name, line)

    def _elevate(self, argv: List[str]) -> List[str]:
        """Wrap a command line so it runs with administrator rights."""
        if self.windows:
            script = (
                f"$p = Start-Process -FilePath {_ps_quote(argv[0])}"
                + (f" -ArgumentList {_ps_quote(subprocess.list2cmdline(argv[1:]))}" if argv[1:] else "")
                + " -Verb RunAs -Wait -PassThru; exit $p.ExitCode"
            )
            return ["powershell", "-NoProfile", "-ExecutionPolicy", "Bypass", "-Command", script]

        if hasattr(os, "geteuid") and os.geteuid() == 0:
            return argv
        return ["sudo", "-n", *argv]
