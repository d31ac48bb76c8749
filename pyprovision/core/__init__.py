"""
Core pipeline components.
"""

from .process_executor import ProcessExecutor
from .runtime_detector import RuntimeDetector
from .downloader import Downloader
from .runtime_installer import RuntimeInstaller
from .repository import RepositoryAcquirer
from .environment import EnvironmentProvisioner
from .package_installer import PackageInstaller
from .artifact_builder import ArtifactBuilder
from .orchestrator import InstallationOrchestrator

__all__ = [
    "ProcessExecutor",
    "RuntimeDetector",
    "Downloader",
    "RuntimeInstaller",
    "RepositoryAcquirer",
    "EnvironmentProvisioner",
    "PackageInstaller",
    "ArtifactBuilder",
    "InstallationOrchestrator"
]
