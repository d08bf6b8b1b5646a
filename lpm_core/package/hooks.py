from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from ..errors import ScriptExecutionError
from .models import ScriptKind

logger = logging.getLogger(__name__)


def run_script(path: Path, kind: ScriptKind, *, package_name: str, timeout: float = 300.0) -> None:
    """Run a lifecycle script with ``/bin/sh``; a non-zero exit is an error."""
    command = ["/bin/sh", str(path)]
    env_extra = {"LPM_PACKAGE": package_name, "LPM_HOOK": kind.value}
    logger.info("running %s script for %s", kind.value, package_name)
    try:
        result = subprocess.run(
            command,
            check=False,
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=str(path.parent),
            env=_script_env(env_extra),
        )
    except subprocess.TimeoutExpired as exc:
        raise ScriptExecutionError(f"{kind.value} script of {package_name} timed out after {timeout:.1f}s") from exc
    except OSError as exc:
        raise ScriptExecutionError(f"unable to run {kind.value} script of {package_name}: {exc}") from exc
    if result.returncode != 0:
        detail = (result.stderr or "").strip()
        raise ScriptExecutionError(
            f"{kind.value} script of {package_name} failed (exit={result.returncode})"
            + (f": {detail}" if detail else "")
        )


def _script_env(extra: dict[str, str]) -> dict[str, str]:
    env = dict(os.environ)
    env.update(extra)
    return env
