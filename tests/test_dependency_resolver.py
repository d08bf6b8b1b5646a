from __future__ import annotations

from pathlib import Path

import pytest

from lpm_core.errors import InvalidPackageName, PackageNotFound, RepositoryIndexError
from lpm_core.repository.index import RepositoryIndex
from lpm_core.repository.resolver import DependencyResolver, resolve_dependency_stack
from lpm_core.versions import Version


def _index(tmp_path: Path, name: str) -> RepositoryIndex:
    return RepositoryIndex(name=name, address=f"/srv/{name}", path=tmp_path / "index" / f"{name}.db")


def _names(stack) -> list[str]:
    return [ref.name for ref in stack]


def test_no_indices_configured() -> None:
    with pytest.raises(PackageNotFound):
        resolve_dependency_stack("A", [])


def test_root_not_found(tmp_path: Path, make_index) -> None:
    r1 = _index(tmp_path, "r1")
    make_index(r1.path, {("B", "1.0.0"): []})
    with pytest.raises(PackageNotFound):
        resolve_dependency_stack("A", [r1])


def test_dependency_resolved_from_second_repository(tmp_path: Path, make_index) -> None:
    r1 = _index(tmp_path, "r1")
    r2 = _index(tmp_path, "r2")
    make_index(r1.path, {("A", "1.0.0"): ["B@>=1.0.0"]})
    make_index(r2.path, {("B", "1.2.0"): []})

    stack = resolve_dependency_stack("A", [r1, r2])

    assert _names(stack) == ["A", "B"]
    assert stack[0].repository == "/srv/r1"
    assert stack[1].repository == "/srv/r2"
    assert stack[1].version == Version.parse("1.2.0")


def test_highest_satisfying_version_wins(tmp_path: Path, make_index) -> None:
    r1 = _index(tmp_path, "r1")
    make_index(r1.path, {("A", "1.0.0"): [], ("A", "1.5.0"): [], ("A", "2.0.0"): []})

    assert resolve_dependency_stack("A@<2.0.0", [r1])[0].version == Version.parse("1.5.0")
    assert resolve_dependency_stack("A", [r1])[0].version == Version.parse("2.0.0")


def test_transitive_dependencies_breadth_first_without_duplicates(tmp_path: Path, make_index) -> None:
    r1 = _index(tmp_path, "r1")
    make_index(
        r1.path,
        {
            ("A", "1.0.0"): ["B", "C"],
            ("B", "1.0.0"): ["D", "C"],
            ("C", "1.0.0"): ["A"],
            ("D", "1.0.0"): [],
        },
    )

    stack = resolve_dependency_stack("A", [r1])

    assert _names(stack) == ["A", "B", "C", "D"]
    assert resolve_dependency_stack("A", [r1]) == stack


def test_missing_dependency_is_fatal(tmp_path: Path, make_index) -> None:
    r1 = _index(tmp_path, "r1")
    make_index(r1.path, {("A", "1.0.0"): ["ghost@>=1.0.0"]})
    with pytest.raises(PackageNotFound, match="ghost"):
        resolve_dependency_stack("A", [r1])


def test_malformed_dependency_is_fatal(tmp_path: Path, make_index) -> None:
    r1 = _index(tmp_path, "r1")
    make_index(r1.path, {("A", "1.0.0"): ["B@~1"]})
    with pytest.raises(InvalidPackageName):
        resolve_dependency_stack("A", [r1])


def test_uninitialized_index_is_skipped(tmp_path: Path, make_index, caplog: pytest.LogCaptureFixture) -> None:
    empty = _index(tmp_path, "empty")
    empty.path.parent.mkdir(parents=True, exist_ok=True)
    empty.path.write_bytes(b"")
    r1 = _index(tmp_path, "r1")
    make_index(r1.path, {("A", "1.0.0"): []})

    with caplog.at_level("WARNING"):
        stack = DependencyResolver([empty, r1]).resolve("A")

    assert _names(stack) == ["A"]
    assert "not initialized" in caplog.text


def test_missing_index_file_raises(tmp_path: Path) -> None:
    with pytest.raises(RepositoryIndexError):
        resolve_dependency_stack("A", [_index(tmp_path, "absent")])


def test_index_is_opened_read_only(tmp_path: Path, make_index) -> None:
    r1 = _index(tmp_path, "r1")
    make_index(r1.path, {("A", "1.0.0"): ["B"], ("B", "1.0.0"): []})
    before = r1.path.read_bytes()

    resolve_dependency_stack("A", [r1])

    assert r1.path.read_bytes() == before
    assert r1.mandatory_dependencies("A", Version.parse("1.0.0")) == ["B"]
    assert r1.mandatory_dependencies("A", Version.parse("9.9.9")) == []


def test_name_in_two_repositories_binds_to_first_discovered(tmp_path: Path, make_index) -> None:
    r1 = _index(tmp_path, "r1")
    r2 = _index(tmp_path, "r2")
    make_index(r1.path, {("A", "1.0.0"): ["B"], ("B", "1.0.0"): []})
    make_index(r2.path, {("B", "3.0.0"): [], ("A", "9.0.0"): []})

    first = resolve_dependency_stack("A", [r1, r2])
    second = resolve_dependency_stack("A", [r1, r2])

    assert first == second
    assert [(ref.name, ref.repository) for ref in first] == [("A", "/srv/r1"), ("B", "/srv/r1")]
    assert first[1].version == Version.parse("1.0.0")
