from __future__ import annotations

from pathlib import Path

import pytest

from lpm_core.config import DEFAULT_ROOT, LpmConfig, Repository, config_from_mapping, load_config
from lpm_core.errors import ConfigError


def test_missing_file_yields_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "absent.toml")
    assert config == LpmConfig()
    assert config.db_path == DEFAULT_ROOT / "db" / "lpm.db"
    assert config.package_scripts_dir("demo") == DEFAULT_ROOT / "pkg" / "demo" / "scripts"


def test_load_config_reads_sections(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text(
        """[paths]
db = "state/lpm.db"
index_dir = "/srv/lpm/index"
install_root = "root"

[install]
max_workers = 2
root_wait_timeout = 0
run_scripts = false

[network]
timeout_seconds = 5

[repositories]
core = "https://repo.example.org/core"
extra = "/srv/extra"
""",
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.db_path == tmp_path / "state" / "lpm.db"
    assert config.index_dir == Path("/srv/lpm/index")
    assert config.install_root == tmp_path / "root"
    assert config.max_workers == 2
    assert config.root_wait_timeout is None
    assert config.run_scripts is False
    assert config.network_timeout == 5.0
    assert config.repositories == (
        Repository("core", "https://repo.example.org/core"),
        Repository("extra", "/srv/extra"),
    )
    indices = config.repository_indices()
    assert [i.name for i in indices] == ["core", "extra"]
    assert indices[0].path == Path("/srv/lpm/index/core.db")
    assert indices[1].address == "/srv/extra"


def test_malformed_toml(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("[paths\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


@pytest.mark.parametrize(
    "payload",
    [
        {"install": {"max_workers": 0}},
        {"install": {"max_workers": "many"}},
        {"install": {"run_scripts": "yes"}},
        {"paths": {"db": ""}},
        {"repositories": {"core": 3}},
        {"network": []},
    ],
)
def test_invalid_values(payload: dict) -> None:
    with pytest.raises(ConfigError):
        config_from_mapping(payload)


def test_root_wait_is_unbounded_unless_configured() -> None:
    assert LpmConfig().root_wait_timeout is None
    assert config_from_mapping({"install": {"max_workers": 2}}).root_wait_timeout is None
    assert config_from_mapping({"install": {"root_wait_timeout": 0}}).root_wait_timeout is None
    assert config_from_mapping({"install": {"root_wait_timeout": 30}}).root_wait_timeout == 30.0
