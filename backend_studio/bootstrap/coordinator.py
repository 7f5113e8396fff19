"""Two-stage bootstrap orchestration.

Stage 1 writes a skeleton whose ``package.json`` registers a ``postinstall``
hook. When the user later runs ``npm install`` in that folder, npm launches
``.scripts/setup_<framework>.py`` which calls :meth:`run_stage2` in a new
process: the real project replaces the skeleton, its dependencies are
installed and the bootstrap artifacts are deleted.

The coordinator tracks a state for the current invocation only. Across
invocations the state is re-derived from disk by
:func:`~backend_studio.bootstrap.state.detect_state`.
"""

from __future__ import annotations

import asyncio
import shutil
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from ..config import (
    BootstrapConfig,
    ConfigModel,
    Framework,
    StudioSettings,
    validate_config,
)
from ..errors import BootstrapStateError, StudioError, ValidationError
from ..scaffolder.filespec import FileBatch
from ..scaffolder.generator import FileSpecGenerator
from ..scaffolder.manifest_gen import launcher_name
from ..scaffolder.writer import ProjectWriter
from .installer import DependencyInstaller
from .state import BootstrapState, detect_state

# Left behind by the stage-1 ``npm install`` in a Flask project.
NPM_LEFTOVERS: tuple[str, ...] = ("node_modules", "package-lock.json")

_RESUMABLE = (BootstrapState.STAGE1_WRITTEN, BootstrapState.STAGE2_RUNNING)


class BootstrapCoordinator:
    """Runs stage 1 or stage 2 of the bootstrap protocol.

    Attributes:
        state: Current state of this invocation.
        history: Every state entered, in order (starts with ``STAGE1_INIT``).
        created_dir: Directory created by :meth:`run_stage1`, if any.
    """

    def __init__(
        self,
        settings: StudioSettings | None = None,
        generator: FileSpecGenerator | None = None,
        installer: DependencyInstaller | None = None,
    ) -> None:
        self.settings = settings or StudioSettings()
        self.generator = generator or FileSpecGenerator(self.settings)
        self.installer = installer or DependencyInstaller(self.settings)
        self.state = BootstrapState.STAGE1_INIT
        self.history: list[BootstrapState] = [self.state]
        self.created_dir: Path | None = None

    # -- Stage 1 -----------------------------------------------------------

    async def run_stage1(self, config: BootstrapConfig, base_dir: str | Path) -> Path:
        """Create ``base_dir/<project_name>`` holding only the bootstrap skeleton.

        On any failure, or cancellation, the created directory is removed.

        Returns:
            The project directory.
        """
        target = Path(base_dir) / config.project_name
        try:
            if target.exists():
                raise ValidationError(
                    "project_name",
                    f'directory "{config.project_name}" already exists; choose a '
                    f"different name or delete the existing folder",
                )
            batch = self.generator.bootstrap(config)
            self.created_dir = target
            await ProjectWriter(target).write(batch, rollback=True)
        except StudioError:
            self._enter(BootstrapState.FAILED)
            raise
        except asyncio.CancelledError:
            self.rollback_stage1()
            raise

        self._enter(BootstrapState.STAGE1_WRITTEN)
        return target

    def rollback_stage1(self) -> None:
        """Delete the directory stage 1 created, unless stage 1 completed."""
        if self.state is BootstrapState.STAGE1_WRITTEN:
            return
        if self.created_dir is not None:
            shutil.rmtree(self.created_dir, ignore_errors=True)
            self.created_dir = None
        self._enter(BootstrapState.FAILED)

    # -- Stage 2 -----------------------------------------------------------

    async def run_stage2(
        self,
        directory: str | Path,
        framework: Framework,
        answers: Mapping[str, Any],
    ) -> ConfigModel:
        """Replace the skeleton in *directory* with the real project.

        The project name is the directory name. A directory whose previous
        stage-2 run was interrupted (hook already gone, launcher still present)
        is accepted and regenerated from scratch.

        Returns:
            The validated configuration the project was generated from.

        Raises:
            BootstrapStateError: If *directory* does not hold a bootstrap skeleton.
            ValidationError, WriteError, DependencyInstallError: On failure;
                files already written are left in place for inspection.
        """
        directory = Path(directory).resolve()
        try:
            self._require_skeleton(directory, framework)
            self._enter(BootstrapState.STAGE2_RUNNING)

            config = validate_config(
                {**answers, "project_name": directory.name, "framework": framework.value}
            )
            batch = self.generator.generate(config)
            writer = ProjectWriter(directory)
            await writer.write(batch)
            await self.installer.install(config, directory)
            await self.cleanup(config, batch, writer)
        except StudioError:
            self._enter(BootstrapState.FAILED)
            raise

        self._enter(BootstrapState.STAGE2_COMPLETE)
        return config

    async def cleanup(
        self,
        config: ConfigModel,
        final_batch: FileBatch,
        writer: ProjectWriter,
    ) -> list[Path]:
        """Remove every stage-1 artifact the final project does not own.

        The stage-1 batch is regenerated (generation is deterministic) to learn
        which paths it wrote; paths also present in *final_batch*, such as
        ``package.json``, were already overwritten and are kept.
        """
        skeleton = self.generator.bootstrap(
            BootstrapConfig(project_name=config.project_name, framework=config.framework)
        )
        owned = set(final_batch.paths())
        stale = [path for path in skeleton.paths() if path not in owned]
        stale.append(self.settings.scripts_dir)
        if config.framework is Framework.FLASK:
            stale.extend(NPM_LEFTOVERS)
        return await writer.remove(stale)

    # -- Internals ---------------------------------------------------------

    def _require_skeleton(self, directory: Path, framework: Framework) -> None:
        state = detect_state(directory, self.settings.scripts_dir)
        if state not in _RESUMABLE:
            raise BootstrapStateError(
                directory, f"no bootstrap skeleton found (state: {state.value})"
            )
        launcher = f"{self.settings.scripts_dir}/{launcher_name(framework)}"
        if not (directory / launcher).is_file():
            raise BootstrapStateError(directory, f"setup script {launcher} is missing")

    def _enter(self, state: BootstrapState) -> None:
        self.state = state
        self.history.append(state)

