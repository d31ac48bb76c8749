"""
Platform-specific path conventions.
"""

import os
from pathlib import Path


IS_WINDOWS = os.name == "nt"

ENV_DIRNAME = ".venv"


def runtime_executable(install_dir: Path, windows: bool = IS_WINDOWS) -> Path:
    """Interpreter inside a runtime installation directory."""
    install_dir = Path(install_dir)
    if windows:
        return install_dir / "python.exe"
    return install_dir / "bin" / "python3"


def env_bin_dir(env_dir: Path, windows: bool = IS_WINDOWS) -> Path:
    return Path(env_dir) / ("Scripts" if windows else "bin")


def env_python(env_dir: Path, windows: bool = IS_WINDOWS) -> Path:
    """Interpreter inside an isolated environment."""
    return env_bin_dir(env_dir, windows) / ("python.exe" if windows else "python")


def env_pythonw(env_dir: Path, windows: bool = IS_WINDOWS) -> Path:
    """Console-less interpreter (Windows); the regular one elsewhere."""
    if windows:
        return env_bin_dir(env_dir, windows) / "pythonw.exe"
    return env_python(env_dir, windows)


def default_desktop_dir() -> Path:
    return Path(os.path.expanduser("~")) / "Desktop"
