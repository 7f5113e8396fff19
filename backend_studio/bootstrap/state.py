"""Bootstrap state, derived from what is on disk.

Stage 1 and stage 2 run in unrelated processes, so nothing is kept in memory
between them. The state of a project directory is read back from two
markers: the ``postinstall`` hook in ``package.json`` and the launcher script
it points at.
"""

from __future__ import annotations

import json
import re
from enum import Enum
from pathlib import Path

from ..errors import BootstrapStateError
from ..scaffolder.manifest_gen import HOOK_SCRIPT
from ..utils import load_json

MANIFEST_FILE = "package.json"

_LAUNCHER_RE = re.compile(r"(\S*setup_[a-z]+\.py)")


class BootstrapState(str, Enum):
    STAGE1_INIT = "stage1_init"
    STAGE1_WRITTEN = "stage1_written"
    STAGE2_RUNNING = "stage2_running"
    STAGE2_COMPLETE = "stage2_complete"
    FAILED = "failed"


def read_hook(directory: Path) -> str | None:
    """The ``postinstall`` command of the project manifest, if any."""
    manifest = directory / MANIFEST_FILE
    if not manifest.is_file():
        return None
    try:
        data = load_json(manifest)
    except json.JSONDecodeError as exc:
        raise BootstrapStateError(directory, f"{MANIFEST_FILE} is not valid JSON ({exc.msg})") from exc
    scripts = data.get("scripts")
    if not isinstance(scripts, dict):
        return None
    hook = scripts.get(HOOK_SCRIPT)
    return hook if isinstance(hook, str) and hook.strip() else None


def launcher_from_hook(hook: str) -> str | None:
    """Relative path of the launcher script referenced by *hook*."""
    match = _LAUNCHER_RE.search(hook)
    return match.group(1) if match else None


def detect_state(directory: str | Path, scripts_dir: str = ".scripts") -> BootstrapState:
    """Classify *directory*.

    * missing directory: ``STAGE1_INIT``
    * hook present and its launcher exists: ``STAGE1_WRITTEN``
    * hook present, launcher gone: ``BootstrapStateError``
    * no hook but the scripts directory remains: ``STAGE2_RUNNING``
      (stage 2 was interrupted after replacing the manifest)
    * anything else: ``STAGE2_COMPLETE``
    """
    directory = Path(directory)
    if not directory.exists():
        return BootstrapState.STAGE1_INIT

    hook = read_hook(directory)
    if hook is not None:
        launcher = launcher_from_hook(hook)
        if launcher is None:
            raise BootstrapStateError(
                directory, f"the {HOOK_SCRIPT} hook does not reference a setup script"
            )
        if not (directory / launcher).is_file():
            raise BootstrapStateError(directory, f"setup script {launcher} is missing")
        return BootstrapState.STAGE1_WRITTEN

    if (directory / scripts_dir).exists():
        return BootstrapState.STAGE2_RUNNING
    return BootstrapState.STAGE2_COMPLETE
