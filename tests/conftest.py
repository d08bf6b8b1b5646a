from __future__ import annotations

import hashlib
import io
import sqlite3
import tarfile
from contextlib import closing
from pathlib import Path
from typing import Callable, Iterator, Mapping, Sequence

import pytest
import yaml

from lpm_core.config import LpmConfig
from lpm_core.db.gateway import CatalogConnection, open_catalog
from lpm_core.db.migrations import start_db_migrations
from lpm_core.repository.index import INDEX_SCHEMA_SQL

LodBuilder = Callable[..., Path]
IndexBuilder = Callable[[Path, Mapping[tuple[str, str], Sequence[str]]], Path]


def _add_bytes(tf: tarfile.TarFile, name: str, data: bytes, mode: int = 0o644) -> None:
    info = tarfile.TarInfo(name)
    info.size = len(data)
    info.mode = mode
    tf.addfile(info, io.BytesIO(data))


def write_lod(
    out_dir: Path,
    name: str,
    version: str = "1.0.0",
    *,
    files: Mapping[str, bytes] | None = None,
    scripts: Mapping[str, str] | None = None,
    dependencies: Sequence[str] = (),
    bad_checksum: str | None = None,
) -> Path:
    """Write ``<name>-<version>.lod`` into ``out_dir`` and return its path."""
    files = {f"usr/share/{name}/README": f"{name} {version}\n".encode()} if files is None else files
    meta = {
        "name": name,
        "version": version,
        "maintainer": "Test Maintainer <test@example.org>",
        "license": "MIT",
        "description": f"{name} test package",
        "dependencies": list(dependencies),
    }
    entries = [
        {
            "path": path,
            "checksum": "0" * 64 if path == bad_checksum else hashlib.sha256(data).hexdigest(),
            "checksum_algorithm": "sha256",
        }
        for path, data in files.items()
    ]
    out_dir.mkdir(parents=True, exist_ok=True)
    archive = out_dir / f"{name}-{version}.lod"
    with tarfile.open(archive, "w:gz") as tf:
        _add_bytes(tf, "meta/meta.yml", yaml.safe_dump(meta).encode())
        _add_bytes(tf, "meta/files.yml", yaml.safe_dump(entries).encode())
        for path, data in files.items():
            _add_bytes(tf, f"program/{path}", data)
        for kind, body in (scripts or {}).items():
            _add_bytes(tf, f"scripts/{kind}", body.encode(), mode=0o755)
    return archive


def write_index(path: Path, packages: Mapping[tuple[str, str], Sequence[str]]) -> Path:
    """Create a repository index db from ``{(name, version): [dependency, ...]}``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with closing(sqlite3.connect(path)) as conn:
        conn.executescript(INDEX_SCHEMA_SQL)
        for (name, version), dependencies in packages.items():
            core, _, tag = version.partition("-")
            major, minor, patch = (int(part) for part in core.split("."))
            cursor = conn.execute(
                "INSERT INTO packages (name, v_major, v_minor, v_patch, v_tag, v_readable) VALUES (?, ?, ?, ?, ?, ?)",
                (name, major, minor, patch, tag or None, version),
            )
            for dependency in dependencies:
                conn.execute(
                    "INSERT INTO mandatory_dependencies (package_id, dependency) VALUES (?, ?)",
                    (cursor.lastrowid, dependency),
                )
        conn.commit()
    return path


@pytest.fixture
def lpm_config(tmp_path: Path) -> LpmConfig:
    root = tmp_path / "lpm"
    return LpmConfig(
        db_path=root / "db" / "lpm.db",
        index_dir=root / "index",
        staging_dir=root / "tmp",
        scripts_root=root / "pkg",
        install_root=tmp_path / "target",
        root_wait_timeout=10.0,
        script_timeout=10.0,
    )


@pytest.fixture
def catalog(lpm_config: LpmConfig) -> Iterator[CatalogConnection]:
    start_db_migrations(lpm_config.db_path)
    with open_catalog(lpm_config.db_path) as db:
        yield db


@pytest.fixture
def make_lod(tmp_path: Path) -> LodBuilder:
    def _make(name: str, version: str = "1.0.0", *, out_dir: Path | None = None, **kwargs) -> Path:
        return write_lod(out_dir or tmp_path / "archives", name, version, **kwargs)

    return _make


@pytest.fixture
def make_index() -> IndexBuilder:
    return write_index
