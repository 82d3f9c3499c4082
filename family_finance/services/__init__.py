"""Services package."""

from family_finance.services.export import MigrationExporter
from family_finance.services.storage import (
    DatabaseClient,
    DatabaseConnectionError,
    FinanceStorageInterface,
    NotFoundError,
    PersonNotFoundError,
    SqlFinanceStorage,
    StorageError,
)

__all__ = [
    # Export services
    "MigrationExporter",
    # Storage services
    "DatabaseClient",
    "DatabaseConnectionError",
    "FinanceStorageInterface",
    "NotFoundError",
    "PersonNotFoundError",
    "SqlFinanceStorage",
    "StorageError",
]
