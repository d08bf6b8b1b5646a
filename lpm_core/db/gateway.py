"""sqlite3 gateway for the package catalog."""

from __future__ import annotations

import logging
import sqlite3
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterator, Sequence

from ..errors import CatalogError

logger = logging.getLogger(__name__)

FailureCallback = Callable[[str, str], None]


class Transaction(Enum):
    BEGIN = "BEGIN IMMEDIATE"
    COMMIT = "COMMIT"
    ROLLBACK = "ROLLBACK"


def exit_on_failure(status: str, statement: str) -> None:
    """Failure callback for unrecoverable schema setup statements."""
    logger.critical("SQL execution has failed. reason=%s statement=%s", status, statement)
    sys.exit(1)


def _status_of(exc: sqlite3.Error) -> str:
    return str(getattr(exc, "sqlite_errorname", None) or type(exc).__name__)


class PreparedStatement:
    """Statement text bound to a connection; iterate it to read rows."""

    def __init__(self, connection: CatalogConnection, statement: str, on_failure: FailureCallback | None) -> None:
        self._connection = connection
        self.statement = statement
        self._on_failure = on_failure
        self._params: tuple[Any, ...] = ()

    def bind(self, *params: Any) -> PreparedStatement:
        self._params = params
        return self

    def execute(self) -> int:
        return self._connection.execute(self.statement, self._params, on_failure=self._on_failure)

    def fetch_one(self) -> sqlite3.Row | None:
        return next(iter(self), None)

    def __iter__(self) -> Iterator[sqlite3.Row]:
        cursor = self._connection._run(self.statement, self._params, self._on_failure)
        return iter(cursor.fetchall())


class CatalogConnection:
    def __init__(self, path: Path, raw: sqlite3.Connection) -> None:
        self.path = path
        self._raw = raw

    def prepare(self, statement: object, on_failure: FailureCallback | None = None) -> PreparedStatement:
        return PreparedStatement(self, str(statement), on_failure)

    def execute(
        self,
        statement: object,
        params: Sequence[Any] = (),
        *,
        on_failure: FailureCallback | None = None,
    ) -> int:
        """Run a single statement and return the last inserted row id."""
        cursor = self._run(str(statement), tuple(params), on_failure)
        return int(cursor.lastrowid or 0)

    def execute_script(self, script: str, *, on_failure: FailureCallback | None = None) -> None:
        try:
            self._raw.executescript(script)
        except sqlite3.Error as exc:
            status = _status_of(exc)
            if on_failure is not None:
                on_failure(status, script)
            raise CatalogError(f"catalog script failed: {exc}", status=status, statement=script) from exc

    def transaction_op(self, op: Transaction) -> None:
        logger.debug("catalog transaction %s path=%s", op.name, self.path)
        try:
            self._raw.execute(op.value)
        except sqlite3.Error as exc:
            raise CatalogError(
                f"catalog transaction {op.name} failed: {exc}",
                status=_status_of(exc),
                statement=op.value,
            ) from exc

    @property
    def in_transaction(self) -> bool:
        return self._raw.in_transaction

    def close(self) -> None:
        self._raw.close()

    def __enter__(self) -> CatalogConnection:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _run(self, statement: str, params: tuple[Any, ...], on_failure: FailureCallback | None) -> sqlite3.Cursor:
        logger.debug("sql=%s params=%s", statement, params)
        try:
            return self._raw.execute(statement, params)
        except sqlite3.Error as exc:
            status = _status_of(exc)
            if on_failure is not None:
                on_failure(status, statement)
            raise CatalogError(f"catalog statement failed: {exc}", status=status, statement=statement) from exc


def open_catalog(path: Path, *, timeout: float = 30.0, create: bool = True) -> CatalogConnection:
    """Open the catalog at ``path``.

    The connection runs in autocommit mode; multi-statement work is wrapped
    explicitly with :meth:`CatalogConnection.transaction_op`.
    """
    if create:
        path.parent.mkdir(parents=True, exist_ok=True)
    elif not path.exists():
        raise CatalogError(f"catalog not found: {path}")
    try:
        raw = sqlite3.connect(str(path), timeout=timeout, isolation_level=None)
    except sqlite3.Error as exc:
        raise CatalogError(f"unable to open catalog {path}: {exc}", status=_status_of(exc)) from exc
    raw.row_factory = sqlite3.Row
    raw.execute("PRAGMA foreign_keys = ON")
    return CatalogConnection(path, raw)
