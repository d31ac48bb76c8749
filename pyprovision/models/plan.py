"""
Install plan model: the read-only configuration snapshot for one run.
"""

from typing import Optional, Tuple
from pydantic import BaseModel, Field


DEFAULT_MANIFEST_NAME = "requirements.txt"


class InstallPlan(BaseModel):
    """Immutable configuration snapshot consumed by one pipeline run."""
    runtime_version: str = Field(..., description="Runtime version to install, e.g. 3.12.6")
    runtime_path: str = Field(default="", description="Target directory of the runtime installation")
    already_installed: bool = Field(default=False, description="Runtime is expected to be present already")
    installer_url: Optional[str] = Field(None, description="Explicit installer URL (derived from version if unset)")
    register_on_path: bool = Field(default=True, description="Ask the installer to register the runtime on PATH")
    repository_url: str = Field(default="", description="Repository to clone")
    clone_root: str = Field(default="", description="Directory the repository is cloned under")
    manifest_name: str = Field(default=DEFAULT_MANIFEST_NAME, description="Preferred dependency manifest file")
    fallback_packages: Tuple[str, ...] = Field(
        default_factory=tuple,
        description="Packages installed one by one when no manifest exists"
    )
    create_shortcut: bool = Field(default=True, description="Create a desktop shortcut")
    entry_program: str = Field(default="main.py", description="Program the launchers run")

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "runtime_version": "3.12.6",
                "runtime_path": "C:\\Python",
                "already_installed": False,
                "repository_url": "https://github.com/gordtulloch/astrofiler-gui.git",
                "clone_root": "C:\\",
                "create_shortcut": True,
                "entry_program": "astrofiler.py"
            }
        }

    @property
    def resolved_installer_url(self) -> str:
        """Installer URL, derived from the runtime version when not given explicitly."""
        if self.installer_url:
            return self.installer_url
        version = self.runtime_version
        return f"https://www.python.org/ftp/python/{version}/python-{version}-amd64.exe"
