"""
Exceptions raised by the low-level provisioning components.

Stage components catch these and turn them into a typed ``StageFailure``.
"""

from typing import Optional, Sequence


class ProvisioningError(Exception):
    """Base class for provisioning errors."""


class ExecError(ProvisioningError):
    """A child process could not be run to completion."""

    def __init__(self, message: str, command: str = "", args: Sequence[str] = ()):
        super().__init__(message)
        self.command = command
        self.args_list = list(args)


class ExecutableNotFoundError(ExecError):
    """The executable does not exist or cannot be spawned."""


class ElevationRefusedError(ExecError):
    """Administrator elevation was declined or is unavailable."""


class ProcessKilledError(ExecError):
    """The child was terminated externally by a signal."""

    def __init__(self, message: str, command: str = "", args: Sequence[str] = (),
                 signal_number: Optional[int] = None):
        super().__init__(message, command, args)
        self.signal_number = signal_number


class ProcessTimeoutError(ExecError):
    """The child did not finish within the allotted time and was killed."""


class DownloadError(ProvisioningError):
    """A download failed at the transport level or with a non-success status."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
