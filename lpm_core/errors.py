"""Error hierarchy shared by the lpm installation engine."""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class LpmError(Exception):
    """Base class for every error raised by lpm."""


class ConfigError(LpmError):
    """Configuration file is malformed or holds values of the wrong type."""


class StatementError(LpmError, ValueError):
    """SQL statement description cannot be rendered."""


class CatalogError(LpmError):
    """Opening, preparing or executing against the catalog failed."""

    def __init__(self, message: str, *, status: str | None = None, statement: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.statement = statement


class MigrationErrorKind(Enum):
    VERSION_COULD_NOT_SET = "version_could_not_set"
    SQLITE_ERROR = "sqlite_error"


class MigrationError(CatalogError):
    def __init__(self, kind: MigrationErrorKind, message: str | None = None) -> None:
        super().__init__(message or f"catalog migration failed: {kind.value}")
        self.kind = kind


class InvalidPackageName(LpmError, ValueError):
    """Package specifier could not be parsed."""


class PackageNotFound(LpmError):
    """Package is not present in any configured repository index."""


class AlreadyInstalled(LpmError):
    """Package name already exists in the catalog."""

    def __init__(self, name: str) -> None:
        super().__init__(f"package '{name}' is already installed")
        self.name = name


class RepositoryIndexError(LpmError):
    """Repository index file is missing or unreadable."""


class DownloadError(LpmError):
    pass


class ExtractionError(LpmError):
    pass


class PackageValidationError(LpmError):
    pass


class ScriptExecutionError(LpmError):
    pass


class FileInstallError(LpmError):
    """Copying a package file into the target filesystem failed."""

    def __init__(self, message: str, *, path: Path) -> None:
        super().__init__(message)
        self.path = path


class RootPackageFailed(LpmError):
    """The root package of a dependency stack failed; dependents abort."""
