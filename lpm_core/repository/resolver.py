"""Dependency stack resolution across repository indices."""

from __future__ import annotations

import logging
from typing import Sequence

from ..errors import PackageNotFound
from ..versions import PackageSpecifier, ResolvedPackage, parse_specifier
from .index import RepositoryIndex

logger = logging.getLogger(__name__)


class DependencyResolver:
    """Compute the ordered set of packages needed to install a request.

    The first element of the resolved stack is always the requested root
    package; its transitive mandatory dependencies follow in discovery order.
    """

    def __init__(self, indices: Sequence[RepositoryIndex]) -> None:
        self.indices = list(indices)

    def resolve(self, request: PackageSpecifier | str) -> list[ResolvedPackage]:
        query = parse_specifier(request) if isinstance(request, str) else request
        if not self.indices:
            raise PackageNotFound(f"no repository is configured; cannot resolve '{query}'")

        initialized = self._initialized_indices()
        root = self._lookup(query, initialized)
        if root is None:
            raise PackageNotFound(f"package '{query}' not found in any repository")

        stack: list[ResolvedPackage] = [root]
        known = {root.name}
        for index in initialized:
            cursor = 0
            while cursor < len(stack):
                current = stack[cursor]
                cursor += 1
                for raw in index.mandatory_dependencies(current.name, current.version):
                    dependency = parse_specifier(raw)
                    if dependency.name in known:
                        continue
                    resolved = self._lookup(dependency, [index, *(i for i in initialized if i is not index)])
                    if resolved is None:
                        raise PackageNotFound(
                            f"dependency '{dependency}' of '{current}' not found in any repository"
                        )
                    logger.debug("dependency %s -> %s (repository=%s)", current, resolved, resolved.repository)
                    known.add(resolved.name)
                    stack.append(resolved)
        return _dedupe_by_name(stack)

    def _initialized_indices(self) -> list[RepositoryIndex]:
        usable: list[RepositoryIndex] = []
        for index in self.indices:
            if index.is_initialized():
                usable.append(index)
            else:
                logger.warning("repository index '%s' is not initialized, skipping (%s)", index.name, index.path)
        return usable

    @staticmethod
    def _lookup(query: PackageSpecifier, indices: Sequence[RepositoryIndex]) -> ResolvedPackage | None:
        for index in indices:
            found = index.find_package(query)
            if found is not None:
                return found
        return None


def resolve_dependency_stack(
    request: PackageSpecifier | str,
    indices: Sequence[RepositoryIndex],
) -> list[ResolvedPackage]:
    return DependencyResolver(indices).resolve(request)


def _dedupe_by_name(stack: Sequence[ResolvedPackage]) -> list[ResolvedPackage]:
    # first occurrence wins when a name is reachable from several repositories
    seen: set[str] = set()
    result: list[ResolvedPackage] = []
    for item in stack:
        if item.name in seen:
            continue
        seen.add(item.name)
        result.append(item)
    return result
