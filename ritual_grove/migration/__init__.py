"""Version migrations between ritual releases."""

from ritual_grove.migration.runner import (
    MigrationRecord,
    MigrationRunner,
    MigrationStatus,
    connection_executor,
    run_script,
)

__all__ = [
    "MigrationRecord",
    "MigrationRunner",
    "MigrationStatus",
    "connection_executor",
    "run_script",
]
