"""Catalog schema migrations keyed on ``PRAGMA user_version``."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from ..errors import CatalogError, MigrationError, MigrationErrorKind
from .gateway import CatalogConnection, FailureCallback, exit_on_failure, open_catalog

logger = logging.getLogger(__name__)

INITIAL_VERSION = 0

CORE_SCHEMA_SQL = """
PRAGMA foreign_keys = ON;

-- core information about lpm itself
CREATE TABLE sys (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  v_major INTEGER NOT NULL,
  v_minor INTEGER NOT NULL,
  v_patch INTEGER NOT NULL,
  v_tag TEXT,
  v_readable TEXT NOT NULL
);

CREATE TABLE checksum_kinds (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  kind TEXT NOT NULL UNIQUE
);

CREATE TABLE package_kinds (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  kind TEXT NOT NULL UNIQUE
);

CREATE TABLE package_repositories (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  repository TEXT NOT NULL UNIQUE
);

CREATE TABLE packages (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  description TEXT,
  maintainer TEXT NOT NULL,
  repository_id INTEGER,
  homepage TEXT,
  depended_package_id INTEGER,
  package_kind_id INTEGER NOT NULL,
  installed_size INTEGER NOT NULL,
  license TEXT NOT NULL,
  v_major INTEGER NOT NULL,
  v_minor INTEGER NOT NULL,
  v_patch INTEGER NOT NULL,
  v_tag TEXT,
  v_readable TEXT NOT NULL,
  FOREIGN KEY(repository_id) REFERENCES package_repositories(id),
  FOREIGN KEY(depended_package_id) REFERENCES packages(id),
  FOREIGN KEY(package_kind_id) REFERENCES package_kinds(id)
);

CREATE INDEX idx_packages_name ON packages(name);

CREATE TABLE files (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  absolute_path TEXT NOT NULL,
  checksum TEXT NOT NULL,
  checksum_kind_id INTEGER NOT NULL,
  package_id INTEGER NOT NULL,
  FOREIGN KEY(package_id) REFERENCES packages(id),
  FOREIGN KEY(checksum_kind_id) REFERENCES checksum_kinds(id)
);
"""

Migration = Callable[[CatalogConnection, FailureCallback], None]


def _create_core_tables(db: CatalogConnection, on_failure: FailureCallback) -> None:
    db.execute_script(CORE_SCHEMA_SQL, on_failure=on_failure)


MIGRATIONS: tuple[Migration, ...] = (_create_core_tables,)


def start_db_migrations(path: Path, *, on_failure: FailureCallback = exit_on_failure) -> int:
    """Bring the catalog at ``path`` up to the latest schema version.

    Returns the schema version after migrating. Already-applied migrations
    are skipped, so running this repeatedly is harmless.
    """
    with open_catalog(path) as db:
        version = INITIAL_VERSION
        for migration in MIGRATIONS:
            version += 1
            if not can_migrate(db, version):
                continue
            logger.info("applying catalog migration version=%s path=%s", version, path)
            migration(db, on_failure)
            set_migration_version(db, version)
        return get_migration_version(db)


def get_migration_version(db: CatalogConnection) -> int:
    try:
        row = db.prepare("PRAGMA user_version;").fetch_one()
    except CatalogError as exc:
        raise MigrationError(MigrationErrorKind.SQLITE_ERROR, str(exc)) from exc
    return int(row[0]) if row is not None else INITIAL_VERSION


def can_migrate(db: CatalogConnection, version: int) -> bool:
    return version > get_migration_version(db)


def set_migration_version(db: CatalogConnection, version: int) -> None:
    try:
        db.execute(f"PRAGMA user_version = {int(version)};")
    except CatalogError as exc:
        raise MigrationError(MigrationErrorKind.VERSION_COULD_NOT_SET) from exc
    if get_migration_version(db) != version:
        raise MigrationError(MigrationErrorKind.VERSION_COULD_NOT_SET)
