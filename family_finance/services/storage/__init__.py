"""
Storage Services Package

Provides the abstract storage interface and the SQLite implementation.
"""

from family_finance.services.storage.interface import (
    DatabaseConnectionError,
    FinanceStorageInterface,
    NotFoundError,
    PersonNotFoundError,
    StorageError,
)
from family_finance.services.storage.sql import (
    DatabaseClient,
    SqlFinanceStorage,
)

__all__ = [
    # Interfaces
    "FinanceStorageInterface",
    # Exceptions
    "DatabaseConnectionError",
    "NotFoundError",
    "PersonNotFoundError",
    "StorageError",
    # SQLite implementation
    "DatabaseClient",
    "SqlFinanceStorage",
]
