"""Unpack ``.lod`` archives into a staging directory and read their metadata."""

from __future__ import annotations

import logging
import shutil
import tarfile
from pathlib import Path
from typing import Any

import yaml

from ..errors import ExtractionError
from ..versions import Version
from .models import (
    FILES_FILE,
    META_DIR,
    META_FILE,
    SCRIPTS_DIR,
    ExtractedPackage,
    PackageFile,
    PackageMeta,
    Script,
    ScriptKind,
)

logger = logging.getLogger(__name__)


def staging_output_path(staging_root: Path, archive: Path) -> Path:
    """Directory an archive is extracted into, e.g. ``<root>/foo-1.0.0``."""
    name = archive.name
    for suffix in (".lod", ".tar.gz", ".tgz", ".tar"):
        if name.endswith(suffix):
            name = name[: -len(suffix)]
            break
    return staging_root / name


def extract_package(archive: Path, staging_root: Path, *, cleanup_paths: tuple[Path, ...] = ()) -> ExtractedPackage:
    """Extract ``archive`` under ``staging_root`` and load its metadata.

    ``cleanup_paths`` are extra artifacts (e.g. a downloaded archive) owned by
    the returned package and removed along with its staging directory.
    """
    dest = staging_output_path(staging_root, archive)
    if dest.exists():
        shutil.rmtree(dest)
    dest.mkdir(parents=True)
    try:
        with tarfile.open(archive, "r:*") as tf:
            _safe_tar_extract(tf, dest)
        meta = read_meta(dest)
        files = read_files(dest)
    except (OSError, ValueError, tarfile.TarError, ExtractionError) as exc:
        shutil.rmtree(dest, ignore_errors=True)
        if isinstance(exc, ExtractionError):
            raise
        raise ExtractionError(f"unable to extract {archive}: {exc}") from exc
    return ExtractedPackage(
        meta=meta,
        files=files,
        scripts=collect_scripts(dest),
        staging_dir=dest,
        cleanup_paths=cleanup_paths,
    )


def _safe_tar_extract(tf: tarfile.TarFile, dest: Path) -> None:
    dest = dest.resolve()
    for m in tf.getmembers():
        target = (dest / m.name).resolve()
        if target != dest and dest not in target.parents:
            raise ExtractionError(f"unsafe archive member path: {m.name}")
    tf.extractall(dest, filter="data")


def read_meta(staging_dir: Path) -> PackageMeta:
    payload = _read_yaml(staging_dir / META_DIR / META_FILE)
    if not isinstance(payload, dict):
        raise ExtractionError(f"{META_DIR}/{META_FILE} must be a mapping")
    try:
        version = Version.parse(str(payload.get("version") or ""))
    except ValueError as exc:
        raise ExtractionError(str(exc)) from exc
    dependencies = payload.get("dependencies") or []
    if not isinstance(dependencies, list):
        raise ExtractionError("meta.dependencies must be a list")
    return PackageMeta(
        name=str(payload.get("name") or "").strip(),
        version=version,
        maintainer=str(payload.get("maintainer") or "").strip(),
        license=str(payload.get("license") or "").strip(),
        description=_optional_str(payload.get("description")),
        homepage=_optional_str(payload.get("homepage")),
        kind=str(payload.get("kind") or "package"),
        installed_size=int(payload.get("installed_size") or 0),
        dependencies=tuple(str(item) for item in dependencies),
    )


def read_files(staging_dir: Path) -> list[PackageFile]:
    payload = _read_yaml(staging_dir / META_DIR / FILES_FILE)
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise ExtractionError(f"{META_DIR}/{FILES_FILE} must be a list")
    files: list[PackageFile] = []
    for item in payload:
        if not isinstance(item, dict):
            raise ExtractionError(f"{META_DIR}/{FILES_FILE} entries must be mappings")
        files.append(
            PackageFile(
                path=str(item.get("path") or "").strip(),
                checksum=str(item.get("checksum") or "").strip().lower(),
                checksum_algorithm=str(item.get("checksum_algorithm") or "sha256").strip().lower(),
            )
        )
    return files


def collect_scripts(staging_dir: Path) -> list[Script]:
    scripts_dir = staging_dir / SCRIPTS_DIR
    scripts: list[Script] = []
    for kind in ScriptKind:
        path = scripts_dir / kind.value
        if path.is_file():
            scripts.append(Script(kind=kind, path=path))
    return scripts


def _read_yaml(path: Path) -> Any:
    if not path.exists():
        if path.name == FILES_FILE:
            return None
        raise ExtractionError(f"missing package metadata: {path.name}")
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ExtractionError(f"invalid YAML in {path.name}: {exc}") from exc


def _optional_str(value: Any) -> str | None:
    text = str(value).strip() if value is not None else ""
    return text or None
