"""Catalog operations for installed packages."""

from __future__ import annotations

import logging

from ..package.models import ExtractedPackage
from .gateway import CatalogConnection
from .statements import Insert, Select, Where, numbered_columns

logger = logging.getLogger(__name__)

_PACKAGE_COLUMNS = numbered_columns(
    "name",
    "description",
    "maintainer",
    "repository_id",
    "homepage",
    "depended_package_id",
    "package_kind_id",
    "installed_size",
    "license",
    "v_major",
    "v_minor",
    "v_patch",
    "v_tag",
    "v_readable",
)

_FILE_COLUMNS = numbered_columns(
    "name",
    "absolute_path",
    "checksum",
    "checksum_kind_id",
    "package_id",
)


def get_package_id(db: CatalogConnection, name: str) -> int | None:
    statement = Select(["id"], "packages").where_condition(Where.equal(1, "name"))
    row = db.prepare(statement).bind(name).fetch_one()
    return int(row["id"]) if row is not None else None


def is_package_exists(db: CatalogConnection, name: str) -> bool:
    return get_package_id(db, name) is not None


def insert_package(
    db: CatalogConnection,
    package: ExtractedPackage,
    *,
    repository: str | None = None,
    source_package_id: int | None = None,
) -> int:
    """Record ``package`` and its files; returns the new ``packages.id``.

    Must run inside the caller's transaction so a later failure can roll the
    rows back.
    """
    meta = package.meta
    kind_id = _ensure_lookup(db, "package_kinds", "kind", meta.kind)
    repository_id = _ensure_lookup(db, "package_repositories", "repository", repository) if repository else None

    package_id = db.execute(
        Insert("packages", _PACKAGE_COLUMNS),
        (
            meta.name,
            meta.description,
            meta.maintainer,
            repository_id,
            meta.homepage,
            source_package_id,
            kind_id,
            meta.installed_size,
            meta.license,
            meta.version.major,
            meta.version.minor,
            meta.version.patch,
            meta.version.tag,
            meta.version.readable,
        ),
    )

    checksum_kinds: dict[str, int] = {}
    for entry in package.files:
        if entry.checksum_algorithm not in checksum_kinds:
            checksum_kinds[entry.checksum_algorithm] = _ensure_lookup(
                db, "checksum_kinds", "kind", entry.checksum_algorithm
            )
        db.execute(
            Insert("files", _FILE_COLUMNS),
            (
                entry.name,
                "/" + entry.path.lstrip("/"),
                entry.checksum,
                checksum_kinds[entry.checksum_algorithm],
                package_id,
            ),
        )
    logger.debug("catalog row id=%s name=%s files=%s", package_id, meta.name, len(package.files))
    return package_id


def _ensure_lookup(db: CatalogConnection, table: str, column: str, value: str) -> int:
    row = db.prepare(Select(["id"], table).where_condition(Where.equal(1, column))).bind(value).fetch_one()
    if row is not None:
        return int(row["id"])
    return db.execute(Insert(table, [(column, 1)]), (value,))
