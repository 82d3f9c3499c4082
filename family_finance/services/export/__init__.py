"""Migration export package."""

from family_finance.services.export.migration import (
    MigrationExporter,
    migration_file_name,
    summarize,
)

__all__ = [
    "MigrationExporter",
    "migration_file_name",
    "summarize",
]
