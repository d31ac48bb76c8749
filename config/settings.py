"""
Configuration settings for pyprovision.
"""

import json
import re
from typing import Optional, List
from pathlib import Path
from pydantic import BaseModel, Field, validator
from pydantic_settings import BaseSettings

from pyprovision.models.plan import DEFAULT_MANIFEST_NAME, InstallPlan
from pyprovision.utils.platform import IS_WINDOWS


DEFAULT_CONFIG_PATH = Path("setup.json")


def default_install_path() -> str:
    if IS_WINDOWS:
        return "C:\\Python"
    return str(Path.home() / ".local" / "python")


class RuntimeConfig(BaseModel):
    """Python runtime configuration."""
    version: str = Field(default="3.12.6", description="Python version to install")
    install_path: str = Field(default_factory=default_install_path, description="Installation directory")
    already_installed: bool = Field(default=False, description="Skip installation and use the existing runtime")
    installer_url: Optional[str] = Field(None, description="Override the python.org installer URL")

    @validator('version')
    def validate_version(cls, v):
        if not re.fullmatch(r"\d+\.\d+(\.\d+)?", v.strip()):
            raise ValueError(f"Invalid Python version: {v}")
        return v.strip()


class RepositoryConfig(BaseModel):
    """Git repository configuration."""
    url: str = Field(default="", description="Repository URL to clone")
    clone_path: str = Field(default="", description="Directory to clone into")


class ApplicationConfig(BaseModel):
    """Application launch configuration."""
    auto_detect_runtime: bool = Field(default=True, description="Detect an existing runtime at startup")
    create_desktop_shortcut: bool = Field(default=True, description="Create a desktop shortcut")
    add_runtime_to_path: bool = Field(default=True, description="Register the runtime on PATH")
    target_program: str = Field(default="main.py", description="Entry program of the application")
    manifest_name: str = Field(default=DEFAULT_MANIFEST_NAME, description="Dependency manifest file name")
    fallback_packages: List[str] = Field(
        default_factory=list,
        description="Packages installed when the repository has no manifest"
    )

    @validator('fallback_packages')
    def strip_empty_packages(cls, v):
        return [p.strip() for p in v if p and p.strip()]


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format"
    )
    file_path: Optional[Path] = Field(default=Path("logs/pyprovision.log"))
    max_file_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(default=5, description="Number of log backups to keep")


class Settings(BaseSettings):
    """Main application settings."""
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    repository: RepositoryConfig = Field(default_factory=RepositoryConfig)
    application: ApplicationConfig = Field(default_factory=ApplicationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    class Config:
        env_prefix = "PYPROVISION_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_nested_delimiter = "__"
        extra = "ignore"  # Ignore extra fields from environment

    @classmethod
    def load(cls, path: Path = DEFAULT_CONFIG_PATH) -> "Settings":
        """Load settings from a JSON file; defaults when the file does not exist."""
        path = Path(path)
        if not path.exists():
            return cls()
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Settings file must contain a JSON object: {path}")
        return cls(**data)

    def save(self, path: Path = DEFAULT_CONFIG_PATH) -> Path:
        """Write settings back to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)
        return path

    def to_plan(self) -> InstallPlan:
        """Snapshot the settings into the immutable plan for one run."""
        return InstallPlan(
            runtime_version=self.runtime.version,
            runtime_path=self.runtime.install_path.strip(),
            already_installed=self.runtime.already_installed,
            installer_url=self.runtime.installer_url,
            register_on_path=self.application.add_runtime_to_path,
            repository_url=self.repository.url.strip(),
            clone_root=self.repository.clone_path.strip(),
            manifest_name=self.application.manifest_name,
            fallback_packages=tuple(self.application.fallback_packages),
            create_shortcut=self.application.create_desktop_shortcut,
            entry_program=self.application.target_program
        )
