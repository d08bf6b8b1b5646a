from .journal import FileJournal
from .orchestrator import Installer, RootIdentity, install_from_repository, install_lod
from .pipeline import InstallPipeline, InstallSource, LocalFileSource, RepositorySource
from .transaction import InstallState, PackageInstallTransaction

__all__ = [
    "FileJournal",
    "InstallPipeline",
    "InstallSource",
    "InstallState",
    "Installer",
    "LocalFileSource",
    "PackageInstallTransaction",
    "RepositorySource",
    "RootIdentity",
    "install_from_repository",
    "install_lod",
]
