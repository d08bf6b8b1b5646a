"""Transactional installation of one staged package.

The catalog rows written for a package and the files copied for it succeed or
fail together: any error after the package is staged undoes the copied files,
rolls the catalog transaction back and re-raises the original error.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path, PurePosixPath

from ..config import LpmConfig
from ..db.gateway import CatalogConnection, Transaction
from ..db.packages import insert_package, is_package_exists
from ..errors import AlreadyInstalled, CatalogError, FileInstallError
from ..package.hooks import run_script
from ..package.models import ExtractedPackage, ScriptKind
from .journal import FileJournal

logger = logging.getLogger(__name__)


class InstallState(Enum):
    STAGED = "staged"
    METADATA_SYNCED = "metadata_synced"
    PRE_INSTALL_RUN = "pre_install_run"
    FILES_INSTALLED = "files_installed"
    CLEANED_UP = "cleaned_up"
    POST_INSTALL_RUN = "post_install_run"
    COMMITTED = "committed"


class PackageInstallTransaction:
    """Drive one package through the install states against one connection.

    ``repository`` is recorded as the package origin; ``source_package_id``
    links the row to the root package of the same install operation.
    """

    def __init__(
        self,
        config: LpmConfig,
        db: CatalogConnection,
        *,
        repository: str | None = None,
        source_package_id: int | None = None,
    ) -> None:
        self.config = config
        self.db = db
        self.repository = repository
        self.source_package_id = source_package_id
        self.state = InstallState.STAGED
        self.history: list[InstallState] = [InstallState.STAGED]
        self.package_id: int | None = None
        self._journal = FileJournal()
        self._began = False

    def run(self, package: ExtractedPackage) -> int:
        name = package.meta.name
        try:
            package_id = self._sync_metadata(package)
            self._run_hook(package, ScriptKind.PRE_INSTALL)
            self._advance(InstallState.PRE_INSTALL_RUN)
            logger.info("Installing package files into system.. (%s)", name)
            self._install(package)
            self._advance(InstallState.FILES_INSTALLED)
            logger.info("Cleaning temporary files.. (%s)", name)
            package.cleanup()
            self._advance(InstallState.CLEANED_UP)
            self._run_hook(package, ScriptKind.POST_INSTALL)
            self._advance(InstallState.POST_INSTALL_RUN)
            self._commit()
        except BaseException as exc:
            self._abort(package, exc)
            raise
        self._journal.commit()
        self._advance(InstallState.COMMITTED)
        logger.info("Installation transaction completed. (%s id=%s)", name, package_id)
        return package_id

    def _sync_metadata(self, package: ExtractedPackage) -> int:
        logger.info("Syncing with package database.. (%s)", package.meta.name)
        self.db.transaction_op(Transaction.BEGIN)
        self._began = True
        if is_package_exists(self.db, package.meta.name):
            raise AlreadyInstalled(package.meta.name)
        package_id = insert_package(
            self.db,
            package,
            repository=self.repository,
            source_package_id=self.source_package_id,
        )
        self.package_id = package_id
        self._advance(InstallState.METADATA_SYNCED)
        return package_id

    def _run_hook(self, package: ExtractedPackage, kind: ScriptKind) -> None:
        if not self.config.run_scripts:
            return
        script = package.script(kind)
        if script is None:
            return
        path = script.path
        if kind is ScriptKind.POST_INSTALL:
            # staging is gone by now; run the installed copy
            path = self.config.package_scripts_dir(package.meta.name) / script.path.name
        run_script(path, kind, package_name=package.meta.name, timeout=self.config.script_timeout)

    def _install(self, package: ExtractedPackage) -> None:
        self._copy_scripts(package)
        self._copy_programs(package)

    def _copy_scripts(self, package: ExtractedPackage) -> None:
        scripts_dir = self.config.package_scripts_dir(package.meta.name)
        for script in package.scripts:
            self._copy(script.path, scripts_dir / script.path.name)

    def _copy_programs(self, package: ExtractedPackage) -> None:
        for entry in package.files:
            rel = PurePosixPath(entry.path)
            self._copy(package.program_dir / rel, self.config.install_root / rel)

    def _copy(self, source: Path, destination: Path) -> None:
        try:
            self._journal.copy(source, destination)
        except OSError as exc:
            raise FileInstallError(f"failed to install {source} -> {destination}: {exc}", path=destination) from exc

    def _commit(self) -> None:
        self.db.transaction_op(Transaction.COMMIT)
        self._began = False

    def _abort(self, package: ExtractedPackage, exc: BaseException) -> None:
        logger.error("installation of %s failed at state=%s: %s", package.meta.name, self.state.value, exc)
        self._journal.undo()
        if self._began:
            try:
                self.db.transaction_op(Transaction.ROLLBACK)
            except CatalogError as rollback_exc:
                logger.error("rollback failed for %s: %s", package.meta.name, rollback_exc)
                exc.add_note(f"catalog rollback also failed: {rollback_exc}")
            self._began = False
        self.package_id = None
        package.discard()

    def _advance(self, state: InstallState) -> None:
        self.state = state
        self.history.append(state)
        logger.debug("install state -> %s", state.value)
