"""Argument parsing and dispatch for the lpm CLI."""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Sequence

from lpm_core.config import load_config
from lpm_core.errors import LpmError

from .commands.install import cmd_lpm_install
from .commands.migrate import cmd_lpm_migrate

CONFIG_ENV = "LPM_CONFIG"
DEFAULT_CONFIG = Path("/etc/lpm/config.toml")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lpm", description="lpm package manager")
    parser.add_argument("--config", default=None, help=f"Config file (default: ${CONFIG_ENV} or {DEFAULT_CONFIG})")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    migrate = sub.add_parser("migrate", help="Create or upgrade the package catalog")
    migrate.set_defaults(func=cmd_lpm_migrate)

    install = sub.add_parser("install", help="Install a .lod file or a repository package")
    install.add_argument("target", help="Path to a .lod archive or name[@<op>x.y.z]")
    install.set_defaults(func=cmd_lpm_install)
    return parser


def _config_path(raw: str | None) -> Path:
    value = raw or os.environ.get(CONFIG_ENV)
    return Path(value).expanduser() if value else DEFAULT_CONFIG


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = load_config(_config_path(args.config))
        return int(args.func(args, config))
    except LpmError as exc:
        print(f"[lpm:{args.command}] error: {exc}")
        return 1
