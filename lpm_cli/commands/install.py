# lpm_cli/commands/install.py
from __future__ import annotations

from pathlib import Path

from lpm_core.config import LpmConfig
from lpm_core.db.migrations import start_db_migrations
from lpm_core.install.orchestrator import Installer
from lpm_core.versions import parse_specifier


def cmd_lpm_install(args, config: LpmConfig) -> int:
    target = str(args.target or "").strip()
    if not target:
        raise SystemExit("[lpm:install] missing target")

    start_db_migrations(config.db_path)
    installer = Installer(config)

    archive = Path(target).expanduser()
    if archive.is_file():
        package_id = installer.install_from_lod_file(archive)
        if package_id is None:
            print(f"[lpm:install] already installed: {archive.name}")
        else:
            print(f"[lpm:install] installed {archive.name} id={package_id}")
        return 0

    request = parse_specifier(target)
    installer.install_from_repository(request)
    print(f"[lpm:install] installed {request}")
    return 0
