from __future__ import annotations

from pathlib import Path

import pytest

from lpm_core.db.gateway import CatalogConnection, Transaction, exit_on_failure, open_catalog
from lpm_core.db.migrations import get_migration_version, set_migration_version, start_db_migrations
from lpm_core.db.packages import get_package_id, insert_package, is_package_exists
from lpm_core.db.statements import Insert, Select
from lpm_core.errors import CatalogError, MigrationError, MigrationErrorKind
from lpm_core.package.models import ExtractedPackage, PackageFile, PackageMeta
from lpm_core.versions import Version


def _package(name: str, tmp_path: Path) -> ExtractedPackage:
    return ExtractedPackage(
        meta=PackageMeta(
            name=name,
            version=Version.parse("2.1.0-rc1"),
            maintainer="someone",
            license="GPL-3.0",
            homepage="https://example.org",
        ),
        files=[
            PackageFile(path="usr/bin/tool", checksum="ab" * 32),
            PackageFile(path="etc/tool.conf", checksum="cd" * 16, checksum_algorithm="md5"),
        ],
        scripts=[],
        staging_dir=tmp_path / "staging" / name,
    )


def test_migrations_create_schema_once(tmp_path: Path) -> None:
    db_path = tmp_path / "db" / "lpm.db"
    assert start_db_migrations(db_path) == 1
    assert start_db_migrations(db_path) == 1

    with open_catalog(db_path) as db:
        tables = {row["name"] for row in db.prepare("SELECT name FROM sqlite_master WHERE type = 'table'")}
        assert {"sys", "checksum_kinds", "package_kinds", "package_repositories", "packages", "files"} <= tables
        assert get_migration_version(db) == 1


def test_set_migration_version_failure_is_reported() -> None:
    class _BrokenDb:
        def execute(self, statement, params=(), *, on_failure=None):
            raise CatalogError("disk I/O error", status="SQLITE_IOERR", statement=statement)

    with pytest.raises(MigrationError) as exc_info:
        set_migration_version(_BrokenDb(), 3)  # type: ignore[arg-type]
    assert exc_info.value.kind is MigrationErrorKind.VERSION_COULD_NOT_SET


def test_failure_callback_receives_status_and_statement(catalog: CatalogConnection) -> None:
    seen: list[tuple[str, str]] = []

    with pytest.raises(CatalogError) as exc_info:
        catalog.execute("SELECT * FROM missing_table", on_failure=lambda status, sql: seen.append((status, sql)))

    assert seen == [("SQLITE_ERROR", "SELECT * FROM missing_table")]
    assert exc_info.value.statement == "SELECT * FROM missing_table"


def test_exit_on_failure_terminates() -> None:
    with pytest.raises(SystemExit) as exc_info:
        exit_on_failure("SQLITE_ERROR", "CREATE TABLE broken")
    assert exc_info.value.code == 1


def test_rollback_discards_rows(catalog: CatalogConnection) -> None:
    catalog.transaction_op(Transaction.BEGIN)
    assert catalog.in_transaction
    catalog.execute(Insert("package_kinds", [("kind", 1)]), ("library",))
    catalog.transaction_op(Transaction.ROLLBACK)

    assert not catalog.in_transaction
    assert list(catalog.prepare(Select(["kind"], "package_kinds"))) == []


def test_commit_without_begin_raises_catalog_error(catalog: CatalogConnection) -> None:
    with pytest.raises(CatalogError) as exc_info:
        catalog.transaction_op(Transaction.COMMIT)
    assert exc_info.value.statement == "COMMIT"


def test_open_catalog_without_create_requires_file(tmp_path: Path) -> None:
    with pytest.raises(CatalogError):
        open_catalog(tmp_path / "absent.db", create=False)


def test_insert_package_records_rows(catalog: CatalogConnection, tmp_path: Path) -> None:
    root_id = insert_package(catalog, _package("root", tmp_path), repository="/srv/repo")
    dep_id = insert_package(catalog, _package("dep", tmp_path), repository="/srv/repo", source_package_id=root_id)

    assert is_package_exists(catalog, "root")
    assert get_package_id(catalog, "dep") == dep_id
    assert get_package_id(catalog, "absent") is None

    row = catalog.prepare("SELECT * FROM packages WHERE id = ?1").bind(dep_id).fetch_one()
    assert row is not None
    assert row["depended_package_id"] == root_id
    assert row["v_readable"] == "2.1.0-rc1"
    assert row["v_tag"] == "rc1"
    assert row["homepage"] == "https://example.org"

    repos = list(catalog.prepare("SELECT repository FROM package_repositories"))
    assert [r["repository"] for r in repos] == ["/srv/repo"]
    kinds = sorted(r["kind"] for r in catalog.prepare("SELECT kind FROM checksum_kinds"))
    assert kinds == ["md5", "sha256"]

    paths = sorted(
        r["absolute_path"] for r in catalog.prepare("SELECT absolute_path FROM files WHERE package_id = ?1").bind(root_id)
    )
    assert paths == ["/etc/tool.conf", "/usr/bin/tool"]
