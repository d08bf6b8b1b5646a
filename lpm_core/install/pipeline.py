"""Per-package install pipeline: stage, validate, then install transactionally."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from ..config import LpmConfig
from ..db.gateway import CatalogConnection
from ..package.download import download_artifact
from ..package.extract import extract_package
from ..package.models import ExtractedPackage
from ..package.validate import validate_package
from ..versions import ResolvedPackage
from .transaction import PackageInstallTransaction

logger = logging.getLogger(__name__)


class InstallSource(Protocol):
    """Where a package archive comes from."""

    @property
    def repository(self) -> str | None: ...

    def stage(self, config: LpmConfig) -> ExtractedPackage: ...


@dataclass(frozen=True)
class LocalFileSource:
    """A ``.lod`` archive already on disk; it is never deleted."""

    path: Path

    @property
    def repository(self) -> str | None:
        return None

    def stage(self, config: LpmConfig) -> ExtractedPackage:
        logger.info("Extracting package %s", self.path)
        return extract_package(self.path, config.staging_dir)


@dataclass(frozen=True)
class RepositorySource:
    """A resolved package downloaded from its repository into staging."""

    ref: ResolvedPackage

    @property
    def repository(self) -> str | None:
        return self.ref.repository

    def stage(self, config: LpmConfig) -> ExtractedPackage:
        archive = config.staging_dir / self.ref.filename
        logger.info("Downloading %s from %s", self.ref.filename, self.ref.repository)
        download_artifact(self.ref.repository, self.ref.filename, archive, timeout=config.network_timeout)
        try:
            return extract_package(archive, config.staging_dir, cleanup_paths=(archive,))
        except BaseException:
            archive.unlink(missing_ok=True)
            raise


class InstallPipeline:
    def __init__(self, config: LpmConfig) -> None:
        self.config = config

    def prepare(self, source: InstallSource) -> ExtractedPackage:
        """Stage and validate ``source``; nothing outside staging is touched."""
        package = source.stage(self.config)
        try:
            logger.info("Validating files.. (%s)", package.meta.name)
            validate_package(package)
        except BaseException:
            package.discard()
            raise
        return package

    def install(
        self,
        package: ExtractedPackage,
        db: CatalogConnection,
        *,
        repository: str | None = None,
        source_package_id: int | None = None,
    ) -> int:
        transaction = PackageInstallTransaction(
            self.config,
            db,
            repository=repository,
            source_package_id=source_package_id,
        )
        return transaction.run(package)

    def run(
        self,
        source: InstallSource,
        db: CatalogConnection,
        source_package_id: int | None = None,
    ) -> int:
        package = self.prepare(source)
        return self.install(
            package,
            db,
            repository=source.repository,
            source_package_id=source_package_id,
        )
