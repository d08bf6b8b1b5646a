from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ..versions import Version

logger = logging.getLogger(__name__)

PROGRAM_DIR = "program"
META_DIR = "meta"
SCRIPTS_DIR = "scripts"
META_FILE = "meta.yml"
FILES_FILE = "files.yml"


class ScriptKind(Enum):
    PRE_INSTALL = "pre_install"
    POST_INSTALL = "post_install"


@dataclass(frozen=True)
class PackageMeta:
    name: str
    version: Version
    maintainer: str
    license: str
    description: str | None = None
    homepage: str | None = None
    kind: str = "package"
    installed_size: int = 0
    dependencies: tuple[str, ...] = ()


@dataclass(frozen=True)
class PackageFile:
    """File shipped under ``program/``; ``path`` is relative to the install root."""

    path: str
    checksum: str
    checksum_algorithm: str = "sha256"

    @property
    def name(self) -> str:
        return Path(self.path).name


@dataclass(frozen=True)
class Script:
    kind: ScriptKind
    path: Path


@dataclass
class ExtractedPackage:
    """A package extracted into its staging directory, ready to install."""

    meta: PackageMeta
    files: list[PackageFile]
    scripts: list[Script]
    staging_dir: Path
    cleanup_paths: tuple[Path, ...] = field(default_factory=tuple)

    @property
    def program_dir(self) -> Path:
        return self.staging_dir / PROGRAM_DIR

    def script(self, kind: ScriptKind) -> Script | None:
        return next((item for item in self.scripts if item.kind is kind), None)

    def cleanup(self) -> None:
        """Remove the staging directory and any other staged artifacts."""
        for path in (self.staging_dir, *self.cleanup_paths):
            if path.is_dir():
                logger.debug("removing staged directory %s", path)
                shutil.rmtree(path)
            elif path.exists():
                logger.debug("removing staged file %s", path)
                path.unlink()

    def discard(self) -> None:
        """Best-effort :meth:`cleanup` for failure paths."""
        try:
            self.cleanup()
        except OSError as exc:
            logger.warning("failed to clean staged files for %s: %s", self.meta.name, exc)
