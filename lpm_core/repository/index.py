"""Read access to local repository index databases."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path

from ..db.statements import Select, Where
from ..errors import RepositoryIndexError
from ..versions import PackageSpecifier, ResolvedPackage, Version

logger = logging.getLogger(__name__)

INDEX_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS packages (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  v_major INTEGER NOT NULL,
  v_minor INTEGER NOT NULL,
  v_patch INTEGER NOT NULL,
  v_tag TEXT,
  v_readable TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS mandatory_dependencies (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  package_id INTEGER NOT NULL,
  dependency TEXT NOT NULL,
  FOREIGN KEY(package_id) REFERENCES packages(id)
);

CREATE INDEX IF NOT EXISTS idx_index_packages_name ON packages(name);
"""

_VERSION_COLUMNS = ("id", "v_major", "v_minor", "v_patch", "v_tag")


@dataclass(frozen=True)
class RepositoryIndex:
    """Index database of one configured repository.

    The file is opened read-only on each lookup. A zero-length file marks a
    repository whose index has not been synced yet.
    """

    name: str
    address: str
    path: Path

    def is_initialized(self) -> bool:
        try:
            size = self.path.stat().st_size
        except FileNotFoundError as exc:
            raise RepositoryIndexError(f"index file for repository '{self.name}' not found: {self.path}") from exc
        return size > 0

    def find_package(self, query: PackageSpecifier) -> ResolvedPackage | None:
        """Return the highest version of ``query.name`` satisfying its constraint."""
        candidates = [version for _, version in self._versions_of(query.name) if query.matches(version)]
        if not candidates:
            return None
        return ResolvedPackage(name=query.name, version=max(candidates), repository=self.address)

    def mandatory_dependencies(self, name: str, version: Version) -> list[str]:
        package_id = next((pid for pid, v in self._versions_of(name) if v == version), None)
        if package_id is None:
            return []
        statement = Select(["dependency"], "mandatory_dependencies").where_condition(Where.equal(1, "package_id"))
        with closing(self._connect()) as conn:
            rows = self._query(conn, str(statement) + " ORDER BY id", (package_id,))
        return [str(row[0]) for row in rows]

    def _versions_of(self, name: str) -> list[tuple[int, Version]]:
        statement = Select(list(_VERSION_COLUMNS), "packages").where_condition(Where.equal(1, "name"))
        with closing(self._connect()) as conn:
            rows = self._query(conn, str(statement), (name,))
        return [(int(row[0]), Version(int(row[1]), int(row[2]), int(row[3]), row[4] or None)) for row in rows]

    def _connect(self) -> sqlite3.Connection:
        try:
            return sqlite3.connect(f"{self.path.resolve().as_uri()}?mode=ro", uri=True)
        except sqlite3.Error as exc:
            raise RepositoryIndexError(f"unable to open index '{self.name}' at {self.path}: {exc}") from exc

    def _query(self, conn: sqlite3.Connection, statement: str, params: tuple[object, ...]) -> list[sqlite3.Row]:
        try:
            return conn.execute(statement, params).fetchall()
        except sqlite3.Error as exc:
            raise RepositoryIndexError(f"index '{self.name}' query failed: {exc}") from exc
