"""
Models for the things stages hand to each other: process invocations,
detected runtimes, provisioned environments and launcher artifacts.
"""

from typing import List, Optional
from pathlib import Path
from pydantic import BaseModel, Field


class ProcessInvocation(BaseModel):
    """One child-process call and what it produced."""
    command: str = Field(..., description="Executable that was run")
    args: List[str] = Field(default_factory=list, description="Arguments passed to the executable")
    working_dir: Optional[str] = Field(None, description="Working directory of the child")
    stdout_lines: List[str] = Field(default_factory=list)
    stderr_lines: List[str] = Field(default_factory=list)
    exit_code: int = Field(..., description="Exit code reported by the child")
    elevated: bool = Field(default=False, description="Whether the call was run elevated")

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        """stdout followed by stderr, as one block of text."""
        return "\n".join(self.stdout_lines + self.stderr_lines)


class DetectedRuntime(BaseModel):
    """A runtime executable that answered a version probe."""
    path: Path = Field(..., description="Absolute path to the runtime executable")
    version: str = Field(..., description="Parsed version string, e.g. 3.12.6")

    def __str__(self) -> str:
        return f"{self.path} (Python {self.version})"


class EnvironmentHandle(BaseModel):
    """An isolated package environment created by the provisioner."""
    path: Path = Field(..., description="Environment directory")
    python: Path = Field(..., description="Interpreter inside the environment")

    @property
    def scripts_dir(self) -> Path:
        return self.python.parent


class LauncherArtifacts(BaseModel):
    """Files written by the artifact builder."""
    launchers: List[Path] = Field(default_factory=list, description="Shell launcher scripts")
    wrapper: Optional[Path] = Field(None, description="Hidden-console launcher wrapper")
    shortcut: Optional[Path] = Field(None, description="Desktop shortcut")
    icon: Optional[Path] = Field(None, description="Icon used for the shortcut")
