"""Dependency installation for generated projects.

Runs npm or pip through :func:`backend_studio.utils.run_command`, one command
at a time. Any non-zero exit aborts with ``DependencyInstallError`` carrying
the command's output.
"""

from __future__ import annotations

import sys
from pathlib import Path

from ..config import ConfigModel, FeatureFlag, Framework, StudioSettings
from ..errors import DependencyInstallError
from ..utils import print_step, print_success, print_warning, run_command

VENV_DIR = "venv"


def venv_python(project_dir: Path) -> Path:
    """Interpreter inside the project's virtual environment."""
    if sys.platform == "win32":
        return project_dir / VENV_DIR / "Scripts" / "python.exe"
    return project_dir / VENV_DIR / "bin" / "python"


class DependencyInstaller:
    """Installs the final project's dependencies."""

    def __init__(self, settings: StudioSettings | None = None) -> None:
        self.settings = settings or StudioSettings()

    def commands(self, config: ConfigModel, project_dir: Path) -> list[list[str]]:
        """The install commands for *config*, in execution order."""
        if config.framework is Framework.EXPRESS:
            return [[self.settings.npm_command, "install"]]

        python = self.settings.python_command
        commands: list[list[str]] = []
        if config.has(FeatureFlag.VENV):
            commands.append([python, "-m", "venv", VENV_DIR])
            python = str(venv_python(project_dir))
        commands.append([python, "-m", "pip", "install", "-r", "requirements.txt"])
        return commands

    async def install(self, config: ConfigModel, project_dir: str | Path) -> list[list[str]]:
        """Run every install command inside *project_dir*.

        Returns:
            The commands that were executed (empty when installs are skipped).

        Raises:
            DependencyInstallError: On the first command that fails.
        """
        project_dir = Path(project_dir)
        if self.settings.skip_install:
            print_warning("Skipping dependency installation (BACKEND_STUDIO_SKIP_INSTALL).")
            return []

        executed: list[list[str]] = []
        for cmd in self.commands(config, project_dir):
            print_step(f"Running: {' '.join(cmd)}")
            returncode, stdout, stderr = await run_command(
                cmd, cwd=project_dir, timeout=self.settings.install_timeout
            )
            if returncode != 0:
                raise DependencyInstallError(cmd, returncode, stderr or stdout)
            executed.append(cmd)

        print_success("Dependencies installed.")
        return executed
