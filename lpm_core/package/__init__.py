"""Package archives: download, extraction, validation and lifecycle scripts."""

from .download import download_artifact
from .extract import extract_package
from .hooks import run_script
from .models import ExtractedPackage, PackageFile, PackageMeta, Script, ScriptKind
from .validate import SUPPORTED_CHECKSUMS, validate_package

__all__ = [
    "ExtractedPackage",
    "PackageFile",
    "PackageMeta",
    "SUPPORTED_CHECKSUMS",
    "Script",
    "ScriptKind",
    "download_artifact",
    "extract_package",
    "run_script",
    "validate_package",
]
