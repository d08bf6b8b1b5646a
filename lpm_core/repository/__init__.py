from .index import INDEX_SCHEMA_SQL, RepositoryIndex
from .resolver import DependencyResolver, resolve_dependency_stack

__all__ = [
    "INDEX_SCHEMA_SQL",
    "DependencyResolver",
    "RepositoryIndex",
    "resolve_dependency_stack",
]
