from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from urllib.parse import unquote, urlsplit

import requests

from ..errors import DownloadError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


def artifact_location(address: str, filename: str) -> str:
    return f"{address.rstrip('/')}/{filename}"


def download_artifact(address: str, filename: str, out_path: Path, *, timeout: float = 120.0) -> Path:
    """Fetch ``filename`` from the repository at ``address`` into ``out_path``.

    HTTP(S) addresses are streamed with requests; anything else is read as a
    local directory (optionally prefixed with ``file://``).
    """
    location = artifact_location(address, filename)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    if location.startswith(("http://", "https://")):
        return _download_http(location, out_path, timeout=timeout)
    return _copy_local(location, out_path)


def _download_http(url: str, out_path: Path, *, timeout: float) -> Path:
    logger.info("downloading %s", url)
    try:
        with requests.get(url, stream=True, timeout=timeout) as r:
            if r.status_code >= 400:
                raise DownloadError(f"download failed: {r.status_code} {url}")
            with open(out_path, "wb") as f:
                for chunk in r.iter_content(chunk_size=_CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
    except requests.RequestException as exc:
        raise DownloadError(f"download failed for {url}: {exc}") from exc
    return out_path


def _copy_local(location: str, out_path: Path) -> Path:
    if location.startswith("file://"):
        location = unquote(urlsplit(location).path)
    source = Path(os.path.expanduser(location))
    logger.info("copying %s", source)
    try:
        shutil.copyfile(source, out_path)
    except OSError as exc:
        raise DownloadError(f"unable to fetch {source}: {exc}") from exc
    return out_path
