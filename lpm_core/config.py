"""Runtime configuration for lpm, loaded from a TOML file."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from .errors import ConfigError
from .repository.index import RepositoryIndex

DEFAULT_ROOT = Path("/var/lib/lpm/default")
INDEX_SUFFIX = ".db"


@dataclass(frozen=True)
class Repository:
    name: str
    address: str


@dataclass(frozen=True)
class LpmConfig:
    db_path: Path = DEFAULT_ROOT / "db" / "lpm.db"
    index_dir: Path = DEFAULT_ROOT / "index"
    staging_dir: Path = DEFAULT_ROOT / "tmp"
    scripts_root: Path = DEFAULT_ROOT / "pkg"
    install_root: Path = Path("/")
    repositories: tuple[Repository, ...] = field(default_factory=tuple)
    max_workers: int = 4
    root_wait_timeout: float | None = None
    run_scripts: bool = True
    script_timeout: float = 300.0
    network_timeout: float = 120.0
    db_timeout: float = 30.0

    def repository_indices(self) -> list[RepositoryIndex]:
        return [
            RepositoryIndex(
                name=repo.name,
                address=repo.address,
                path=self.index_dir / f"{repo.name}{INDEX_SUFFIX}",
            )
            for repo in self.repositories
        ]

    def package_scripts_dir(self, package_name: str) -> Path:
        return self.scripts_root / package_name / "scripts"


def load_config(path: Path | None) -> LpmConfig:
    """Read ``path`` and overlay it on the defaults.

    A missing file yields the default configuration; a malformed one raises
    :class:`ConfigError`.
    """
    if path is None or not path.exists():
        return LpmConfig()
    try:
        payload = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"invalid config file {path}: {exc}") from exc
    return config_from_mapping(payload, base_dir=path.parent)


def config_from_mapping(payload: Mapping[str, Any], *, base_dir: Path | None = None) -> LpmConfig:
    defaults = LpmConfig()
    paths = _section(payload, "paths")
    install = _section(payload, "install")
    network = _section(payload, "network")
    database = _section(payload, "database")
    repositories = _section(payload, "repositories")

    def _path(key: str, default: Path) -> Path:
        raw = paths.get(key)
        if raw is None:
            return default
        if not isinstance(raw, str) or not raw.strip():
            raise ConfigError(f"paths.{key} must be a non-empty string")
        value = Path(raw)
        if not value.is_absolute() and base_dir is not None:
            value = base_dir / value
        return value

    try:
        max_workers = int(install.get("max_workers", defaults.max_workers))
        raw_wait = install.get("root_wait_timeout", defaults.root_wait_timeout)
        root_wait_timeout = float(raw_wait) if raw_wait is not None and raw_wait != 0 else None
        script_timeout = float(install.get("script_timeout", defaults.script_timeout))
        network_timeout = float(network.get("timeout_seconds", defaults.network_timeout))
        db_timeout = float(database.get("timeout_seconds", defaults.db_timeout))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid numeric config value: {exc}") from exc
    if max_workers < 1:
        raise ConfigError("install.max_workers must be at least 1")

    run_scripts = install.get("run_scripts", defaults.run_scripts)
    if not isinstance(run_scripts, bool):
        raise ConfigError("install.run_scripts must be a boolean")

    repos: list[Repository] = []
    for name, address in repositories.items():
        if not isinstance(address, str) or not address.strip():
            raise ConfigError(f"repositories.{name} must be a non-empty address string")
        repos.append(Repository(name=str(name), address=address.strip()))

    return LpmConfig(
        db_path=_path("db", defaults.db_path),
        index_dir=_path("index_dir", defaults.index_dir),
        staging_dir=_path("staging_dir", defaults.staging_dir),
        scripts_root=_path("scripts_root", defaults.scripts_root),
        install_root=_path("install_root", defaults.install_root),
        repositories=tuple(repos),
        max_workers=max_workers,
        root_wait_timeout=root_wait_timeout,
        run_scripts=run_scripts,
        script_timeout=script_timeout,
        network_timeout=network_timeout,
        db_timeout=db_timeout,
    )


def _section(payload: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = payload.get(name, {})
    if not isinstance(section, Mapping):
        raise ConfigError(f"[{name}] must be a table")
    return section
