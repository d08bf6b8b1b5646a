"""Undo log for files written outside the catalog transaction."""

from __future__ import annotations

import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Entry:
    destination: Path
    backup: Path | None
    created_dirs: tuple[Path, ...]


class FileJournal:
    """Record every file placed on the target filesystem so it can be undone.

    A destination that already existed is backed up into a private temporary
    directory before being overwritten. :meth:`undo` restores the previous
    state in reverse order; :meth:`commit` drops the backups.
    """

    def __init__(self) -> None:
        self._entries: list[_Entry] = []
        self._backup_root: Path | None = None

    def __len__(self) -> int:
        return len(self._entries)

    def copy(self, source: Path, destination: Path) -> None:
        created = _missing_parents(destination.parent)
        destination.parent.mkdir(parents=True, exist_ok=True)
        backup = self._backup(destination) if destination.exists() else None
        # record before copying so a half-written destination is undone too
        self._entries.append(_Entry(destination, backup, created))
        logger.debug("Copying %s -> %s", source, destination)
        shutil.copy2(source, destination)

    def undo(self) -> None:
        while self._entries:
            entry = self._entries.pop()
            try:
                if entry.backup is not None:
                    shutil.copy2(entry.backup, entry.destination)
                elif entry.destination.exists():
                    entry.destination.unlink()
                for directory in reversed(entry.created_dirs):
                    if directory.is_dir() and not any(directory.iterdir()):
                        directory.rmdir()
            except OSError as exc:
                logger.warning("failed to undo %s: %s", entry.destination, exc)
        self._drop_backups()

    def commit(self) -> None:
        self._entries.clear()
        self._drop_backups()

    def _backup(self, destination: Path) -> Path:
        if self._backup_root is None:
            self._backup_root = Path(tempfile.mkdtemp(prefix="lpm-journal-"))
        backup = self._backup_root / str(len(self._entries))
        shutil.copy2(destination, backup)
        return backup

    def _drop_backups(self) -> None:
        if self._backup_root is not None:
            shutil.rmtree(self._backup_root, ignore_errors=True)
            self._backup_root = None


def _missing_parents(directory: Path) -> tuple[Path, ...]:
    missing: list[Path] = []
    current = directory
    while not current.exists() and current != current.parent:
        missing.append(current)
        current = current.parent
    # outermost first
    return tuple(reversed(missing))
