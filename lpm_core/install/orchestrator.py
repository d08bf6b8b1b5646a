"""Install a local archive or a repository package with its dependencies."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from ..config import LpmConfig
from ..db.gateway import CatalogConnection, open_catalog
from ..db.packages import get_package_id, is_package_exists
from ..errors import AlreadyInstalled, RootPackageFailed
from ..repository.resolver import DependencyResolver
from ..versions import PackageSpecifier, ResolvedPackage, parse_specifier
from .pipeline import InstallPipeline, LocalFileSource, RepositorySource

logger = logging.getLogger(__name__)


class RootIdentity:
    """Write-once slot for the root package row id.

    Dependents block in :meth:`wait` until the root publishes its id or
    reports failure; either outcome wakes every waiter.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._value: int | None = None
        self._error: BaseException | None = None

    def publish(self, package_id: int) -> None:
        with self._cond:
            if self._value is not None or self._error is not None:
                raise RuntimeError("root identity is already set")
            self._value = package_id
            self._cond.notify_all()

    def fail(self, error: BaseException) -> None:
        with self._cond:
            if self._value is not None or self._error is not None:
                return
            self._error = error
            self._cond.notify_all()

    def wait(self, timeout: float | None = None) -> int:
        with self._cond:
            done = self._cond.wait_for(lambda: self._value is not None or self._error is not None, timeout)
            if not done:
                raise RootPackageFailed(f"timed out after {timeout:.1f}s waiting for the root package")
            if self._value is None:
                raise RootPackageFailed(f"root package failed: {self._error}") from self._error
            return self._value


class Installer:
    def __init__(self, config: LpmConfig, resolver: DependencyResolver | None = None) -> None:
        self.config = config
        self.resolver = resolver or DependencyResolver(config.repository_indices())
        self.pipeline = InstallPipeline(config)
        # one catalog writer at a time; a transaction spans hooks and copies
        self._write_lock = threading.Lock()

    def install_from_lod_file(self, path: Path) -> int | None:
        """Install a local ``.lod`` archive; ``None`` if the name is already installed."""
        package = self.pipeline.prepare(LocalFileSource(path))
        with self._connect() as db:
            if is_package_exists(db, package.meta.name):
                logger.info("Package '%s' is already installed.", package.meta.name)
                package.discard()
                return None
            try:
                return self.pipeline.install(package, db)
            except AlreadyInstalled as exc:
                logger.info("Package '%s' is already installed.", exc.name)
                return None

    def install_from_repository(self, request: PackageSpecifier | str) -> None:
        query = parse_specifier(request) if isinstance(request, str) else request
        with self._connect() as db:
            if is_package_exists(db, query.name):
                logger.info("Package '%s' is already installed.", query.name)
                return

        stack = self.resolver.resolve(query)
        logger.info("Resolved %s package(s): %s", len(stack), ", ".join(str(ref) for ref in stack))
        root_filename = stack[0].filename
        identity = RootIdentity()

        workers = min(self.config.max_workers, len(stack))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            # root goes first so a worker is always free to publish its id
            futures = [
                pool.submit(self._install_ref, ref, ref.filename == root_filename, identity) for ref in stack
            ]
            first_error: BaseException | None = None
            for ref, future in zip(stack, futures):
                try:
                    future.result()
                except Exception as exc:
                    logger.error("installation of %s failed: %s", ref, exc)
                    if first_error is None:
                        first_error = exc
        if first_error is not None:
            raise first_error

    def _install_ref(self, ref: ResolvedPackage, is_root: bool, identity: RootIdentity) -> int | None:
        if is_root:
            try:
                package_id = self._install_root(ref)
            except BaseException as exc:
                identity.fail(exc)
                raise
            identity.publish(package_id)
            return package_id

        with self._connect() as db:
            if is_package_exists(db, ref.name):
                logger.info("Dependency '%s' is already installed, skipping.", ref.name)
                return None
        package = self.pipeline.prepare(RepositorySource(ref))
        try:
            root_id = identity.wait(self.config.root_wait_timeout)
        except BaseException:
            package.discard()
            raise
        with self._write_lock, self._connect() as db:
            try:
                return self.pipeline.install(package, db, repository=ref.repository, source_package_id=root_id)
            except AlreadyInstalled:
                logger.info("Dependency '%s' is already installed, skipping.", ref.name)
                return None

    def _install_root(self, ref: ResolvedPackage) -> int:
        package = self.pipeline.prepare(RepositorySource(ref))
        with self._write_lock, self._connect() as db:
            try:
                return self.pipeline.install(package, db, repository=ref.repository)
            except AlreadyInstalled:
                existing = get_package_id(db, ref.name)
                if existing is None:
                    raise
                logger.info("Package '%s' was installed concurrently; using id=%s.", ref.name, existing)
                return existing

    def _connect(self) -> CatalogConnection:
        return open_catalog(self.config.db_path, timeout=self.config.db_timeout)


def install_lod(path: Path, config: LpmConfig) -> int | None:
    return Installer(config).install_from_lod_file(path)


def install_from_repository(request: PackageSpecifier | str, config: LpmConfig) -> None:
    Installer(config).install_from_repository(request)
