from __future__ import annotations

import hashlib
import logging
from pathlib import Path, PurePosixPath

from ..errors import PackageValidationError
from ..versions import PackageSpecifier
from .models import ExtractedPackage

logger = logging.getLogger(__name__)

SUPPORTED_CHECKSUMS = ("md5", "sha1", "sha256", "sha512")


def file_checksum_hex(path: Path, algorithm: str) -> str:
    h = hashlib.new(algorithm)
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def validate_package(package: ExtractedPackage) -> None:
    """Check package structure and the checksum of every declared file.

    Runs before anything touches the catalog or the target filesystem.
    """
    meta = package.meta
    if not meta.name or PackageSpecifier.parse(meta.name) is None:
        raise PackageValidationError(f"invalid package name: {meta.name!r}")
    if not meta.maintainer:
        raise PackageValidationError(f"{meta.name}: maintainer is required")
    if not meta.license:
        raise PackageValidationError(f"{meta.name}: license is required")
    for raw in meta.dependencies:
        if PackageSpecifier.parse(raw) is None:
            raise PackageValidationError(f"{meta.name}: invalid dependency specifier {raw!r}")

    seen: set[str] = set()
    for entry in package.files:
        rel = PurePosixPath(entry.path)
        if not entry.path or rel.is_absolute() or ".." in rel.parts:
            raise PackageValidationError(f"{meta.name}: invalid file path {entry.path!r}")
        if entry.path in seen:
            raise PackageValidationError(f"{meta.name}: duplicate file entry {entry.path!r}")
        seen.add(entry.path)
        if entry.checksum_algorithm not in SUPPORTED_CHECKSUMS:
            raise PackageValidationError(
                f"{meta.name}: unsupported checksum algorithm {entry.checksum_algorithm!r} for {entry.path}"
            )
        source = package.program_dir / rel
        if not source.is_file():
            raise PackageValidationError(f"{meta.name}: declared file missing from archive: {entry.path}")
        actual = file_checksum_hex(source, entry.checksum_algorithm)
        if actual != entry.checksum:
            raise PackageValidationError(
                f"{meta.name}: checksum mismatch for {entry.path} "
                f"(expected {entry.checksum_algorithm}:{entry.checksum}, got {actual})"
            )
        logger.debug("validated %s (%s)", entry.path, entry.checksum_algorithm)
