"""Semantic versions and ``name@<op><version>`` package specifiers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from functools import total_ordering

from .errors import InvalidPackageName

_SEMVER_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)(?:-([0-9A-Za-z.]+))?$")
_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._+-]*$")


@total_ordering
@dataclass(frozen=True)
class Version:
    major: int
    minor: int
    patch: int
    tag: str | None = None

    @classmethod
    def parse(cls, value: str) -> Version:
        m = _SEMVER_RE.match((value or "").strip())
        if not m:
            raise ValueError(f"invalid semver: {value!r} (expected x.y.z[-tag])")
        return cls(int(m.group(1)), int(m.group(2)), int(m.group(3)), m.group(4))

    @property
    def readable(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        return f"{base}-{self.tag}" if self.tag else base

    def _key(self) -> tuple[int, int, int, int, str]:
        # an untagged release sorts after any pre-release of the same triple
        return (self.major, self.minor, self.patch, 0 if self.tag else 1, self.tag or "")

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        return self.readable


class Condition(Enum):
    LESS = "<"
    LESS_OR_EQUAL = "<="
    EQUAL = "="
    GREATER = ">"
    GREATER_OR_EQUAL = ">="

    def holds(self, candidate: Version, wanted: Version) -> bool:
        if self is Condition.LESS:
            return candidate < wanted
        if self is Condition.LESS_OR_EQUAL:
            return candidate <= wanted
        if self is Condition.GREATER:
            return candidate > wanted
        if self is Condition.GREATER_OR_EQUAL:
            return candidate >= wanted
        return candidate == wanted


# two-character operators first so ">=" is not read as ">"
_OPERATORS = sorted(Condition, key=lambda c: len(c.value), reverse=True)


@dataclass(frozen=True)
class PackageSpecifier:
    """A package name with an optional version constraint."""

    name: str
    condition: Condition | None = None
    version: Version | None = None

    @classmethod
    def parse(cls, text: str) -> PackageSpecifier | None:
        raw = (text or "").strip()
        if not raw:
            return None
        if "@" not in raw:
            return cls(name=raw) if _NAME_RE.match(raw) else None

        name, constraint = raw.split("@", 1)
        name = name.strip()
        constraint = constraint.strip()
        if not _NAME_RE.match(name) or not constraint:
            return None

        condition = Condition.EQUAL
        for op in _OPERATORS:
            if constraint.startswith(op.value):
                condition = op
                constraint = constraint[len(op.value) :].strip()
                break
        try:
            version = Version.parse(constraint)
        except ValueError:
            return None
        return cls(name=name, condition=condition, version=version)

    def matches(self, version: Version) -> bool:
        if self.condition is None or self.version is None:
            return True
        return self.condition.holds(version, self.version)

    def __str__(self) -> str:
        if self.condition is None or self.version is None:
            return self.name
        return f"{self.name}@{self.condition.value}{self.version}"


def parse_specifier(text: str) -> PackageSpecifier:
    spec = PackageSpecifier.parse(text)
    if spec is None:
        raise InvalidPackageName(f"invalid package specifier: {text!r}")
    return spec


@dataclass(frozen=True)
class ResolvedPackage:
    """A concrete package version bound to the repository that supplies it."""

    name: str
    version: Version
    repository: str

    @property
    def filename(self) -> str:
        return canonical_filename(self.name, self.version)

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"


def canonical_filename(name: str, version: Version) -> str:
    return f"{name}-{version.readable}.lod"
