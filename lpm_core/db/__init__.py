from .gateway import CatalogConnection, PreparedStatement, Transaction, exit_on_failure, open_catalog
from .migrations import get_migration_version, start_db_migrations
from .packages import get_package_id, insert_package, is_package_exists
from .statements import (
    Column,
    Comparison,
    Delete,
    Insert,
    InsertFromSelect,
    Select,
    SelectDistinct,
    Where,
    numbered_columns,
)

__all__ = [
    "CatalogConnection",
    "Column",
    "Comparison",
    "Delete",
    "Insert",
    "InsertFromSelect",
    "PreparedStatement",
    "Select",
    "SelectDistinct",
    "Transaction",
    "Where",
    "exit_on_failure",
    "get_migration_version",
    "get_package_id",
    "insert_package",
    "is_package_exists",
    "numbered_columns",
    "open_catalog",
    "start_db_migrations",
]
