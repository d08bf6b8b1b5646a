# lpm_cli/commands/migrate.py
from __future__ import annotations

from lpm_core.config import LpmConfig
from lpm_core.db.migrations import start_db_migrations


def cmd_lpm_migrate(args, config: LpmConfig) -> int:
    version = start_db_migrations(config.db_path)
    print(f"[lpm:migrate] catalog={config.db_path} version={version}")
    return 0
