"""Materialise a ``FileBatch`` on disk.

Files are written one at a time, in batch order, through
``asyncio.to_thread`` so a long write never blocks the event loop that also
drives install subprocesses. Writing is idempotent: the same batch always
produces byte-identical files.
"""

from __future__ import annotations

import asyncio
import shutil
import stat
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

from ..errors import WriteError
from .filespec import FileBatch


class ProjectWriter:
    """Writes generated files below a project root.

    Args:
        root: Project directory. It is created on the first write if needed.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    async def write(self, batch: FileBatch, *, rollback: bool = False) -> list[Path]:
        """Create parent directories and write every file of *batch*.

        Args:
            batch: Files to write, in order.
            rollback: When ``True`` and this call created ``root``, the root is
                deleted again if any write fails or the task is cancelled.
                Otherwise partially written trees are left in place.

        Returns:
            Absolute paths of the written files.

        Raises:
            WriteError: On the first file or directory that cannot be written.
        """
        created_root = not self.root.exists()
        written: list[Path] = []
        target = self.root
        try:
            for spec in batch:
                target = self.resolve(spec.relative_path)
                await asyncio.to_thread(_write_file, target, spec.content, spec.executable)
                written.append(target)
        except OSError as exc:
            if rollback and created_root:
                self._discard_root()
            raise WriteError(target, exc.strerror or str(exc)) from exc
        except asyncio.CancelledError:
            if rollback and created_root:
                self._discard_root()
            raise
        return written

    async def remove(self, relative_paths: Iterable[str]) -> list[Path]:
        """Delete files or directories below the root.

        Missing paths are skipped. Directories left empty by a removal are
        pruned up to (but excluding) the root.

        Returns:
            The paths that existed and were removed.
        """
        removed: list[Path] = []
        for relative in relative_paths:
            target = self.resolve(relative)
            try:
                existed = await asyncio.to_thread(_remove_path, target)
                if existed:
                    removed.append(target)
                    await asyncio.to_thread(self._prune_empty_parents, target)
            except OSError as exc:
                raise WriteError(target, exc.strerror or str(exc)) from exc
        return removed

    def resolve(self, relative_path: str) -> Path:
        """Map a batch path to a location below the root, refusing escapes."""
        posix = PurePosixPath(relative_path)
        if posix.is_absolute() or ".." in posix.parts:
            raise WriteError(relative_path, "path escapes the project directory")
        return self.root.joinpath(*posix.parts)

    # -- Internals ---------------------------------------------------------

    def _discard_root(self) -> None:
        shutil.rmtree(self.root, ignore_errors=True)

    def _prune_empty_parents(self, path: Path) -> None:
        parent = path.parent
        while parent != self.root and self.root in parent.parents:
            try:
                parent.rmdir()
            except OSError:
                return
            parent = parent.parent


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _write_file(path: Path, content: str, executable: bool) -> None:
    """Synchronous helper: create parent dirs and write content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8", newline="\n")
    if executable:
        current = path.stat().st_mode
        path.chmod(current | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def _remove_path(path: Path) -> bool:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
        return True
    if path.exists() or path.is_symlink():
        path.unlink()
        return True
    return False
